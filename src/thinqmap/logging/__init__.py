"""Audit logging for control requests."""

from thinqmap.logging.dynamo_logger import ControlAuditLogger

__all__ = ["ControlAuditLogger"]
