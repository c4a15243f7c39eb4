from .attachments import HttpObjectStorage, ObjectStorage, StorageError, attachment_path

__all__ = ["HttpObjectStorage", "ObjectStorage", "StorageError", "attachment_path"]
