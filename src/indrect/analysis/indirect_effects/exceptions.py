"""
간접효과 분석 예외 클래스
"""


class IndirectEffectsError(Exception):
    """간접효과 분석 기본 예외"""


class VariableLookupError(IndirectEffectsError, KeyError):
    """데이터셋 또는 결과 테이블에 변수가 없음"""

    def __init__(self, missing, where: str = "data"):
        self.missing = list(missing)
        self.where = where
        super().__init__(f"{where}에 없는 변수: {', '.join(map(str, self.missing))}")

    def __str__(self):
        # KeyError는 메시지를 repr로 감싸므로 원래 메시지 사용
        return self.args[0]


class PredictionBackendError(IndirectEffectsError, RuntimeError):
    """외부 예측 모델이 그리드를 거부함"""


class GridShapeMismatchError(IndirectEffectsError, ValueError):
    """매개변수 그리드와 대입 그리드의 행 대응이 깨짐"""


class ConfigurationError(IndirectEffectsError, ValueError):
    """잘못된 설정값"""
