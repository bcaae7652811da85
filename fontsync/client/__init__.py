"""
FontSync Client Package

HTTP and WebSocket clients plus the sync and monitor operations built on them.
"""
