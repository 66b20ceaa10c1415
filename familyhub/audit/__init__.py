"""Audit logging package."""

from familyhub.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
