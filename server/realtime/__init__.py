"""
Realtime channel hub.

Relays per-owner insert broadcasts between replicas and fans the storage
change feed out to every connected replica.
"""
