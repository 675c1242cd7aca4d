from enum import Enum

from fastapi import HTTPException, status


class ErrorCode(Enum):
    """
    클라이언트에게 그대로 노출되는 도메인 에러 코드.
    값은 (HTTP 상태 코드, 메시지) 쌍입니다.
    """

    # 404
    NOT_FOUND_MEMBER = (status.HTTP_404_NOT_FOUND, "회원 정보를 찾을 수 없습니다.")
    NOT_FOUND_RENTAL = (status.HTTP_404_NOT_FOUND, "함께쓰기 게시글 정보를 찾을 수 없습니다.")
    NOT_FOUND_CHAT_ROOM = (status.HTTP_404_NOT_FOUND, "채팅방 정보를 찾을 수 없습니다.")

    # 400
    CANNOT_CHAT_WITH_SELF = (status.HTTP_400_BAD_REQUEST, "자기 자신과는 채팅할 수 없습니다.")
    NOT_CHAT_ROOM_MEMBER = (status.HTTP_400_BAD_REQUEST, "채팅방에 참여한 회원이 아닙니다.")
    DUPLICATE_EMAIL = (status.HTTP_400_BAD_REQUEST, "이미 사용 중인 이메일입니다.")
    DUPLICATE_NICKNAME = (status.HTTP_400_BAD_REQUEST, "이미 사용 중인 닉네임입니다.")
    NOT_RENTAL_OWNER = (status.HTTP_400_BAD_REQUEST, "함께쓰기 게시글 작성자만 수정/삭제할 수 있습니다.")
    RENTAL_HAS_CHAT_ROOMS = (status.HTTP_400_BAD_REQUEST, "채팅방이 존재하는 게시글은 삭제할 수 없습니다.")
    EMPTY_CHAT_MESSAGE = (status.HTTP_400_BAD_REQUEST, "빈 메시지는 보낼 수 없습니다.")
    CHAT_MESSAGE_TOO_LONG = (status.HTTP_400_BAD_REQUEST, "메시지는 1000자를 넘을 수 없습니다.")

    # 401
    INVALID_LOGIN = (status.HTTP_401_UNAUTHORIZED, "이메일 또는 비밀번호가 틀렸습니다.")

    @property
    def status_code(self) -> int:
        return self.value[0]

    @property
    def message(self) -> str:
        return self.value[1]


class DomainException(HTTPException):
    def __init__(self, error_code: ErrorCode):
        super().__init__(status_code=error_code.status_code, detail=error_code.message)
        self.error_code = error_code


class NotFoundException(DomainException):
    """Member / Rental / ChatRoom 을 찾지 못한 경우"""
    pass


class BadRequestException(DomainException):
    """잘못된 요청 (자기 자신과의 채팅 등)"""
    pass
