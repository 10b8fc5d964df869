"""
Param contracts validated at the API boundary.

Usage:
    from api.contracts import SwapCardsParams, parse_params

    params = parse_params(SwapCardsParams, request.args)
"""

from .params import (
    BaseParamsModel,
    SwapCardsParams,
    ValidationError,
    parse_params,
    validation_error_body,
)

__all__ = [
    'BaseParamsModel',
    'SwapCardsParams',
    'ValidationError',
    'parse_params',
    'validation_error_body',
]
