# Schemas package init
"""
Grocery Vision Backend — Schemas Package
==========================================

What:  Pydantic models for detection records and the API envelopes.

Schema Inventory:
    - detection.py: InventoryItem, ProduceItem, response/error envelopes
"""
