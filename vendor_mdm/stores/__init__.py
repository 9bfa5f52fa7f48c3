"""Secondary stores: document store, queue backends, message bus.

Files:
  documents.py - DocumentStore interface + SQL / in-memory backends
  queue.py     - QueueBackend interface + SQL / in-memory backends
  bus.py       - MessageBus (event type -> queue routing, envelopes)
  models.py    - tables used by the SQL backends
"""
