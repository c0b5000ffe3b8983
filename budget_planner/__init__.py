"""
Budget Planner - Core Package

State, storage and sync for a personal finance tracker: transactions,
budgets, savings goals and debts, persisted locally and optionally
replicated to a remote store per user.

DESIGN PRINCIPLES:
1. The store is the single source of truth; every mutation goes through it
2. Storage only ever sees whole snapshots
3. Durability failures are logged, never raised into mutations
4. The remote record wins at startup; the last full write wins after that
"""

__version__ = "1.0.0"
__author__ = "Budget Planner Team"
