"""Persistence adapters"""
from .database import Database
from .rule_store import RuleStore, PostgresRuleStore
from .audit_store import AuditRecorder, PostgresAuditRecorder
from .memory import InMemoryRuleStore, InMemoryAuditRecorder

__all__ = [
    'Database',
    'RuleStore',
    'PostgresRuleStore',
    'AuditRecorder',
    'PostgresAuditRecorder',
    'InMemoryRuleStore',
    'InMemoryAuditRecorder'
]
