"""
FastAPI dependencies for the filesystem.
"""

from fastapi import Request

from packages.filesystem import FileSystem


def get_file_system(request: Request) -> FileSystem:
    """Return the file system facade created with the application."""
    return request.app.state.file_system
