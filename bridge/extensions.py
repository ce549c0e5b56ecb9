"""
Flask extensions initialization.
"""
from .utils.durable_store import DurableStore

durable_store = DurableStore()
