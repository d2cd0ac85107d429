"""
Common response envelopes shared by all endpoints
"""
from atams.schemas import DataResponse, PaginationResponse

__all__ = ["DataResponse", "PaginationResponse"]
