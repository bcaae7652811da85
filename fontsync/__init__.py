"""
FontSync - Font Directory Synchronization

Keeps client font directories in line with a server's font directory and
notifies clients of changes in near real time.
"""

__version__ = "1.0.0"
