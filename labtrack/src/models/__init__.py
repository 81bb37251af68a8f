"""
Models package for the LabTrack maintenance service.
Exports all database models.
"""

from labtrack.src.models.notifications import Notification
from labtrack.src.models.records import Record
from labtrack.src.models.transactions import Transaction
from labtrack.src.models.users import User

__all__ = ["User", "Transaction", "Notification", "Record"]
