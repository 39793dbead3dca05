"""
Services Layer

Scheduling services that:
- Accept domain inputs (IDs, sessions, request models)
- Return domain outputs (models, result and conflict payloads)
- Do NOT depend on HTTP request/response objects
- Only write under the event's write lock; validation never writes
"""
