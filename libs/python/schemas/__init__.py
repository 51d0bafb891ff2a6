"""Shared schema exports."""

from .user import Address, CamelModel, CityStat, Gender, Pagination, Role, UserRecord, UserSummary

__all__ = [
    "Address",
    "CamelModel",
    "CityStat",
    "Gender",
    "Pagination",
    "Role",
    "UserRecord",
    "UserSummary",
]
