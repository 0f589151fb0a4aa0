from .common import dt_to_psx, format_ws, parse_id_list, psx_to_dt

__all__ = ["dt_to_psx", "format_ws", "parse_id_list", "psx_to_dt"]
