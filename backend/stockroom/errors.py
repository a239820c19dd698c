from typing import Any, Optional

from fastapi import HTTPException, status


class InventoryError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request failed"

    def __init__(self, detail: Optional[str] = None, headers: Optional[dict[str, str]] = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail, headers=headers)


class Unauthorized(InventoryError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"


class Forbidden(InventoryError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Insufficient role"


class InvalidSite(InventoryError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, site: Any = None):
        super().__init__(f"Unknown site: {site}" if site else "Site not specified")


class InvalidRequest(InventoryError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid payload"


class EquipmentNotFound(InventoryError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Equipment not found"


class WithdrawalNotFound(InventoryError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Withdrawal not found"


class InsufficientStock(InventoryError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, equipment_name: str):
        self.equipment_name = equipment_name
        super().__init__(f"Insufficient stock for {equipment_name}")


class DuplicateUser(InventoryError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "User already exists"


class InternalError(InventoryError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"
