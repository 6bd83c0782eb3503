# Services package init
"""
Grocery Vision Backend — Services Layer
=========================================

What:  Everything between the HTTP routes and the Gemini API.

Service Inventory:
    - LLMService (abstract): the oracle interface, generate(prompt, image)
    - GeminiService: Google Gemini implementation of LLMService
    - ImageService: upload validation (extension, size, MIME sniffing)
    - DetectionService: prompt → oracle → normalizer orchestration
    - normalizer: model text → InventoryItem / ProduceItem lists
"""
