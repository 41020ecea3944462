from .storage import DataSaver

__all__ = ["DataSaver"]
