"""
Serving — FastAPI application exposing semantic search over HTTP.
"""
