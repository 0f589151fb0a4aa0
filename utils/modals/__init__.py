from .record_sale import RecordSaleModal

__all__ = ["RecordSaleModal"]
