"""
Services Layer

Start list business logic that:
- Accepts domain inputs (configurations, registrations, IDs, sessions)
- Returns domain outputs (configurations, summaries, dicts)
- Does NOT depend on HTTP request/response objects
- Only mutates persisted data in the modules that say so (store, selector)
"""
