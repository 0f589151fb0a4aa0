from .confirm import ConfirmDeleteRunView

__all__ = ["ConfirmDeleteRunView"]
