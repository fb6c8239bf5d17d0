"""Services Layer — the imperative shell around core/.

Invariants:
    - Services take an AsyncSession and an OperationContext; nothing is module-global
    - BatchRegistry is the only class that writes rows; the other services go through it

Design Decisions:
    - One service per use case: belt (intake/advance/finalize), restoration, integrity
"""
