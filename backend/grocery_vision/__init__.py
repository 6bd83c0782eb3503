"""
Grocery Vision Backend — Application Package Initializer
=========================================================

What: Marks the `grocery_vision` directory as a Python package.
Who:  Imported by uvicorn (`uvicorn grocery_vision.main:app`) and pytest.

Architecture Note:
    The backend is a thin layered service:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Services (Orchestration + Oracle)  │  ← validate → prompt → Gemini
    ├─────────────────────────────────────┤
    │       Normalizer (Core Logic)       │  ← raw model text → typed records
    ├─────────────────────────────────────┤
    │          Schemas (Data)             │  ← Pydantic records and envelopes
    └─────────────────────────────────────┘

    Nothing is persisted: every record lives for one request/response cycle.
"""

__version__ = "1.0.0"
