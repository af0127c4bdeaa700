"""
models/ - Domain Layer
======================
Immutable domain objects: recurring payment schedules, the obligations
derived from them, late fee rules, and the domain exceptions.
No database or I/O code lives here.
"""
