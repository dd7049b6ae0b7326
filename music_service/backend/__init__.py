# Backend module
from .base import PlaybackBackend, FinishedCallback
from .ffplay import FFplayBackend, find_ffplay

__all__ = ["PlaybackBackend", "FinishedCallback", "FFplayBackend", "find_ffplay"]
