from .report_store import ReportStore, encode_result, decode_result, DEFAULT_HISTORY_LIMIT

__all__ = ["ReportStore", "encode_result", "decode_result", "DEFAULT_HISTORY_LIMIT"]
