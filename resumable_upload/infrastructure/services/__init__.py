"""
Service implementations backed by the local filesystem.
"""
