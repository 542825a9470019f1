"""
Standard API response envelope.
"""

from typing import Any, Optional


def success_response(data: Any = None, message: str = "Success") -> dict:
    return {"success": True, "data": data, "message": message}


def list_response(items: list, message: str = "Success") -> dict:
    return {"success": True, "data": items, "count": len(items), "message": message}


def error_response(message: str = "Error", data: Optional[Any] = None) -> dict:
    return {"success": False, "data": data, "message": message}
