"""api/ -- FastAPI transport layer for authgate. Imports from auth/, cache/ and core/."""
