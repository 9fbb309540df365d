"""예외 클래스 모듈.

Exception classes module.

HTTP exceptions (``NotFoundError``, ``BadRequestError``) are raised by services
and surface directly as responses. Repository-layer exceptions
(``QueryDerivationError``, ``PropertyReferenceError``) are plain exceptions
that know nothing about HTTP.

Usage:
    from app.utils.exceptions import NotFoundError
    raise NotFoundError("Member not found")
"""

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """404 Not Found 예외 — 요청한 리소스를 찾을 수 없을 때 사용.

    404 Not Found exception.
    Raised when a requested resource (member, team) does not exist.

    Args:
        detail: 오류 메시지 (Error message, default: "Resource not found")
    """

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestError(HTTPException):
    """400 Bad Request 예외 — 잘못된 요청 데이터 시 사용.

    400 Bad Request exception.
    Raised when request parameters are well-formed but meaningless
    (e.g. sorting by a property the entity does not have).

    Args:
        detail: 오류 메시지 (Error message, default: "Bad request")
    """

    def __init__(self, detail: str = "Bad request") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class QueryDerivationError(Exception):
    """쿼리 메서드 선언 오류 — 레포지토리 등록 시점에 발생.

    Raised while a repository is constructed when a declared query method
    cannot be compiled: unknown property, unknown operator, OR clauses,
    or a malformed explicit query declaration.

    Attributes:
        method_name: 문제가 된 메서드 이름 (Offending method name)
    """

    def __init__(self, method_name: str, reason: str) -> None:
        self.method_name = method_name
        self.reason = reason
        super().__init__(f"Cannot derive query for '{method_name}': {reason}")


class PropertyReferenceError(ValueError):
    """존재하지 않는 속성 참조 — 정렬 조건 등 호출 시점에 발생.

    Raised at call time when a sort order references a property that the
    entity does not map.
    """

    def __init__(self, property_name: str, entity_name: str) -> None:
        self.property_name = property_name
        self.entity_name = entity_name
        super().__init__(f"No property '{property_name}' found for type '{entity_name}'")
