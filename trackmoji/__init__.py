"""
Trackmoji - Source Package

A small HTTP backend that records financial transactions written as
free text and answers questions about a user's transaction history.

DESIGN PRINCIPLES:
1. AI reads the text → validation decides → storage records
2. Fail early, fail visibly (422 rather than a guessed row)
3. No silent corrections
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Trackmoji Team"
