"""Upload request assembly and submission."""

from .assembler import UploadFile, UploadRequest, assemble_upload, submit_and_persist, write_torrents

__all__ = ["UploadFile", "UploadRequest", "assemble_upload", "submit_and_persist", "write_torrents"]
