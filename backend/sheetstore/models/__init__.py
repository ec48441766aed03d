from sheetstore.models.document import StoredDocument

__all__ = ["StoredDocument"]
