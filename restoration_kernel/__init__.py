"""
Restoration Kernel - project lifecycle core

Workflow core for restoration / insurance repair projects:
- Guarded project status state machine
- Append-only project timeline ledger
- Versioned estimates and change orders
- Money in integer minor units
"""

__version__ = "0.1.0"
