# moodiary/exceptions.py
"""
프로젝트 전역에서 공통으로 사용하는 예외 정의 모듈.

- ConfigError               : 설정/환경(.env, 키 파일, 프롬프트 파일) 문제
- DiaryDataError            : 분석 요청 입력 검증 실패
- ProfileNotFoundError      : 저장된 감정 프로필이 없음
- ResponseParseError        : LLM content를 알려진 형태로 해석하지 못함
- LLMError                  : LLM 호출 실패 공통 부모
  - ProviderUnauthorizedError : 인증 실패 (같은 키로 재시도 금지, 크게 알림)
  - ProviderTransportError    : 네트워크/타임아웃 (해당 신호만 비움)
  - ProviderRefusalError      : LLM이 분석을 거절 (해당 신호만 비움)
"""


class ConfigError(RuntimeError):
    """환경 설정(.env, 키 파일 등) 문제."""
    pass


class DiaryDataError(ValueError):
    """일기 내용/이미지 참조 등 입력 데이터 검증 실패."""
    pass


class ProfileNotFoundError(LookupError):
    """요청한 일기에 저장된 감정 프로필이 없음."""
    pass


class ResponseParseError(ValueError):
    """LLM 응답 content가 알려진 JSON 형태 어디에도 맞지 않음."""
    pass


class LLMError(RuntimeError):
    """LLM 호출, 응답 포맷 과정에서 발생하는 오류."""
    pass


class ProviderUnauthorizedError(LLMError):
    """API 키가 없거나 거부됨."""
    pass


class ProviderTransportError(LLMError):
    """네트워크 오류 또는 타임아웃."""
    pass


class ProviderRefusalError(LLMError):
    """LLM이 요청한 분석을 거절함. message에 거절 문구 원문을 담는다."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
