"""auth/ -- Authentication core for authgate.

Layer rule: auth/ imports only stdlib, third-party libraries, core/ and the
cache/ key-value protocol. It does NOT import from api/.
api/ imports from auth/, not the other way around.
"""
