"""Service layer package for expiry signal domain logic.

Services here sit between the HTTP routers and the storage helpers: they
normalize and validate input, call the store, and shape the signal payloads.
"""
