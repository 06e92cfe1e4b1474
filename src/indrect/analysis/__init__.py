"""
분석 모듈 패키지

- 간접효과 예측 (Indirect Effects)
"""

from .indirect_effects import *
from .indirect_effects import __all__
