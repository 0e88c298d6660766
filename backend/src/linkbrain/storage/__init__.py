"""Persistence layer: models, database handle and repositories."""

from linkbrain.storage.db import Database
from linkbrain.storage.models import Base, InviteCodeIndex, Plan, SubscriptionRecord

__all__ = ["Base", "Database", "InviteCodeIndex", "Plan", "SubscriptionRecord"]
