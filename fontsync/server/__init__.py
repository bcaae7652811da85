"""
FontSync Server Package

FastAPI application serving the authoritative font manifest, font downloads
and change notifications. The application factory lives in server.py.
"""
