"""
Service layer abstraction.

Each service encapsulates business logic for a domain.  The cost
allocation engine is split into the attendance resolver, the split
calculator, the engine itself (``cost_service``) and the background
dispatcher (``recompute``); the balance ledger reads what they write.
"""
