"""
indrect - 간접효과 예측 그리드와 시각화

적합된 매개모델/결과모델을 예측 그리드에 대해 평가하고,
매개변수 예측값을 결과모델에 대입한 간접효과 테이블과 플롯을 만듭니다.
"""

__version__ = "0.1.0"

from . import analysis
from .analysis.indirect_effects import *
from .analysis.indirect_effects import __all__ as _indirect_all

__all__ = ["analysis"] + list(_indirect_all)
