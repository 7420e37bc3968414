"""
Ledger Assistant - AI Gateway Package

The AI side of a personal finance tracker: a gateway that talks to
several incompatible language-model providers, and a pipeline that turns
free text or receipt OCR into transaction candidates.

DESIGN PRINCIPLES:
1. AI suggests → Human confirms → Caller persists
2. Fail early, fail visibly
3. One call contract regardless of provider
4. Every call is auditable
5. Configuration is explicit, never ambient
"""

__version__ = "1.0.0"
__author__ = "Ledger Assistant Team"
