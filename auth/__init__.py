"""auth/ -- Account capability interface, its adapters, and identity backends.

Layer rule: auth/ imports from core/ and datastore/ plus third-party
libraries. core/ and datastore/ never import from auth/.
account.py and main.py import from auth/, not the other way around.
"""
