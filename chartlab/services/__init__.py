"""
ChartLab Services

Service layer containing all computation.
Each service has a defined interface (contract) and implementation.
"""

from chartlab.services.base import BaseService, ServiceError, ValidationError

__all__ = ["BaseService", "ServiceError", "ValidationError"]
