"""Docstore — MongoDB query/command translation layer.

Accepts a free-form request in shell syntax (``db.users.find({...})``) or one
of several structured JSON shapes, reduces it to a single canonical command
and runs it against a :class:`DocumentStore`.
"""

from dbbridge.docstore.commands import CanonicalCommand, Invocation, Pipeline, RawCommand
from dbbridge.docstore.store import DocumentStore, MotorDocumentStore
from dbbridge.docstore.translator import to_command, translate_read, translate_write

__all__ = [
    "CanonicalCommand",
    "DocumentStore",
    "Invocation",
    "MotorDocumentStore",
    "Pipeline",
    "RawCommand",
    "to_command",
    "translate_read",
    "translate_write",
]
