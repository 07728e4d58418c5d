"""Domain layer for School Domains.

Key normalization, registry validation rules and plan gating live here.
It is intentionally framework-agnostic: domain logic should be testable without Flask.
"""
