"""
structedit — declarative structural edits resolved into exact text edits.

Public API for library usage::

    from structedit import EditSession, FileSystemHost, ApplyEditsRequest

    session = EditSession(FileSystemHost("."))
    result = session.apply_request(ApplyEditsRequest.from_dict(payload))
"""

from .editing import ApplyEditsRequest, EditSession, FileSystemHost

__version__ = "0.1.0"

__all__ = ["ApplyEditsRequest", "EditSession", "FileSystemHost"]
