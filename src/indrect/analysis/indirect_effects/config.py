"""
Indirect Effects Configuration Module

간접효과 예측 그리드 생성과 시각화를 위한 설정 클래스와 기본 설정을 제공합니다.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Any, Tuple
import logging
import numbers

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# R 색상명 → hex
R_COLORS = {
    'tomato3': '#CD4F39',
    'aquamarine4': '#458B74',
    'mediumaquamarine': '#66CDAA',
    'lightskyblue': '#87CEFA',
    'seashell': '#FFF5EE',
    'goldenrod2': '#EEB422',
    'magenta3': '#CD00CD',
    'slategray2': '#B9D3EE',
}


@dataclass
class IndirectEffectsConfig:
    """간접효과 예측 설정 클래스"""

    # 그리드 설정
    n_points: int = 30
    exposure1_values: List[float] = field(default_factory=lambda: [-1.0, 0.0, 1.0])
    mediator2_quantiles: List[float] = field(default_factory=lambda: [0.1, 0.5, 0.9])

    # 예측 설정
    conf_int: bool = True  # 신뢰구간 계산 여부
    ignore_random_effects: bool = True  # re.form = NA
    confidence_level: float = 0.95
    group_var: Optional[str] = None  # MixedLM 조건부 예측용 집단 변수

    # 결과 설정
    results_dir: str = "indirect_effects_results"
    save_csv: bool = True
    save_json: bool = True
    save_report: bool = True

    # 로깅 설정
    log_level: str = "INFO"

    def __post_init__(self):
        """설정 검증"""
        self._validate_grid_settings()
        self._validate_prediction_settings()

        if logging.getLevelName(str(self.log_level).upper()) not in (
                logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL):
            raise ConfigurationError(f"알 수 없는 log_level: {self.log_level}")

    def _validate_grid_settings(self):
        """그리드 설정 검증"""
        if isinstance(self.n_points, bool) or not isinstance(self.n_points, numbers.Integral):
            raise ConfigurationError(f"n_points는 정수여야 합니다: {self.n_points!r}")
        if self.n_points < 1:
            raise ConfigurationError(f"n_points는 1 이상이어야 합니다: {self.n_points}")

        self.exposure1_values = _as_float_list(self.exposure1_values, 'exposure1_values')
        self.mediator2_quantiles = _as_float_list(self.mediator2_quantiles, 'mediator2_quantiles')

        for prob in self.mediator2_quantiles:
            if prob < 0 or prob > 1:
                raise ConfigurationError(f"mediator2_quantiles의 값은 0과 1 사이여야 합니다: {prob}")

        # 정렬/중복은 허용하되 경고만 남김
        for name, values in (('exposure1_values', self.exposure1_values),
                             ('mediator2_quantiles', self.mediator2_quantiles)):
            if len(set(values)) != len(values):
                logger.warning(f"{name}에 중복된 값이 있습니다: {values}")
            elif values != sorted(values):
                logger.warning(f"{name}이(가) 정렬되어 있지 않습니다: {values}")

    def _validate_prediction_settings(self):
        """예측 설정 검증"""
        if self.confidence_level <= 0 or self.confidence_level >= 1:
            raise ConfigurationError("confidence_level은 0과 1 사이의 값이어야 합니다.")

    @property
    def alpha(self) -> float:
        return 1.0 - self.confidence_level

    def with_overrides(self, **overrides: Any) -> "IndirectEffectsConfig":
        """None이 아닌 값만 덮어쓴 새 설정 반환 (검증 재실행)"""
        changes = {key: value for key, value in overrides.items() if value is not None}
        if not changes:
            return self
        return replace(self, **changes)


@dataclass
class PlotConfig:
    """간접효과 시각화 설정 클래스"""

    # 축 색상 (직접효과 / 간접효과 플롯)
    direct_x_color: str = R_COLORS['tomato3']
    direct_y_color: str = R_COLORS['aquamarine4']
    indirect_x_color: str = R_COLORS['mediumaquamarine']
    indirect_y_color: str = R_COLORS['lightskyblue']
    add_arrows: bool = True

    # 선/리본 설정
    line_width: float = 1.5
    ribbon_alpha: float = 0.2
    background_ribbon_alpha: float = 0.05
    linewidth_range: Tuple[float, float] = (1.0, 6.0)  # 노출변수에 따른 선 굵기 범위

    # 노출변수 그라디언트 팔레트
    palette_low: str = R_COLORS['seashell']
    palette_high: str = R_COLORS['tomato3']
    palette_steps: int = 30
    palette_alpha: float = 0.8

    # 상호작용 패싯 색상
    exposure1_colors: List[str] = field(default_factory=lambda: [
        R_COLORS['goldenrod2'], R_COLORS['magenta3'], R_COLORS['slategray2']
    ])

    # 범례 위치 (축 좌표)
    legend_position: Tuple[float, float] = (0.3, 0.75)
    facet_legend_position: Tuple[float, float] = (0.2, 0.5)

    # 그림 설정
    figure_size: Tuple[float, float] = (8, 6)
    facet_width: float = 4.5
    dpi: int = 300
    title_size: int = 14
    axis_title_size: int = 16
    tick_label_size: int = 14
    y_tick_rotation: float = 35

    def __post_init__(self):
        """설정 검증"""
        for name in ('ribbon_alpha', 'background_ribbon_alpha', 'palette_alpha'):
            value = getattr(self, name)
            if value < 0 or value > 1:
                raise ConfigurationError(f"{name}은(는) 0과 1 사이의 값이어야 합니다.")
        if self.palette_steps < 2:
            raise ConfigurationError("palette_steps는 2 이상이어야 합니다.")
        if not self.exposure1_colors:
            raise ConfigurationError("exposure1_colors가 비어 있습니다.")
        low, high = self.linewidth_range
        if low <= 0 or high < low:
            raise ConfigurationError(f"잘못된 linewidth_range: {self.linewidth_range}")


def _as_float_list(values, name: str) -> List[float]:
    """수치 시퀀스를 float 리스트로 변환 (순서/중복 유지)"""
    if isinstance(values, (str, bytes)) or not hasattr(values, '__iter__'):
        raise ConfigurationError(f"{name}은(는) 수치 시퀀스여야 합니다: {values!r}")
    try:
        converted = [float(v) for v in values]
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name}에 수치가 아닌 값이 있습니다: {values!r}") from e
    if not converted:
        raise ConfigurationError(f"{name}이(가) 비어 있습니다.")
    return converted


def create_default_config() -> IndirectEffectsConfig:
    """기본 간접효과 설정 생성"""
    return IndirectEffectsConfig()


def create_custom_config(n_points: int = 30,
                         exposure1_values: Optional[List[float]] = None,
                         mediator2_quantiles: Optional[List[float]] = None,
                         conf_int: bool = True,
                         results_dir: Optional[str] = None,
                         **kwargs) -> IndirectEffectsConfig:
    """사용자 정의 간접효과 설정 생성"""

    config_dict: Dict[str, Any] = {
        'n_points': n_points,
        'conf_int': conf_int,
    }

    if exposure1_values is not None:
        config_dict['exposure1_values'] = list(exposure1_values)

    if mediator2_quantiles is not None:
        config_dict['mediator2_quantiles'] = list(mediator2_quantiles)

    if results_dir is not None:
        config_dict['results_dir'] = results_dir

    # 추가 키워드 인수 병합
    config_dict.update(kwargs)

    return IndirectEffectsConfig(**config_dict)


def configure_logging(config: Optional[IndirectEffectsConfig] = None,
                      log_file: Optional[str] = None) -> None:
    """로깅 설정 (스크립트/노트북 진입점에서 호출)"""
    config = config or DEFAULT_CONFIG
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper()),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


# 기본 설정 인스턴스
DEFAULT_CONFIG = create_default_config()
DEFAULT_PLOT_CONFIG = PlotConfig()
