from .gate import Caller, Capability, RecordFilter, authorize, narrow, require_self_or_staff

__all__ = ["Caller", "Capability", "RecordFilter", "authorize", "narrow", "require_self_or_staff"]
