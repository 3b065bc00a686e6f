"""Utility functions for the deployment engine."""

from deploy_engine.utils.clock import describe_age, epoch_millis, utcnow
from deploy_engine.utils.id_generator import generate_short_id, new_record_id, to_base36

__all__ = [
    "describe_age",
    "epoch_millis",
    "generate_short_id",
    "new_record_id",
    "to_base36",
    "utcnow",
]
