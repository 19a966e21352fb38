"""FastAPI application exposing the request gate over HTTP."""
