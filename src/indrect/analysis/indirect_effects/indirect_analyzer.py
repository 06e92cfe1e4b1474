"""
Indirect Effects Analyzer Module

적합된 매개모델/결과모델로부터 직접효과·간접효과 예측 테이블을 만드는 핵심 엔진입니다.

세 가지 경우를 지원합니다:
1. 단순 매개: E → M → O
2. 상호작용하는 노출변수: E1*E2 → M → O
3. 상호작용하는 매개변수: E → M1*M2 → O

간접효과 테이블은 매개모델이 예측한 M 값을 결과모델의 M 입력으로 대입하여 얻고,
매개모델 그리드의 노출변수 값을 같은 행에 다시 붙입니다.
"""

import pandas as pd
from collections import OrderedDict
from typing import Any, Dict, Optional, Sequence
import logging

from .config import IndirectEffectsConfig
from .data_loader import IndirectDataLoader
from .exceptions import IndirectEffectsError
from .grid_builder import (
    attach_labels,
    build_substitution_grid,
    evenly_spaced,
    expand_grid,
    observed_quantiles,
    single_column_grid,
)
from .prediction_backend import PredictionBackend, as_predictor, predict_grid

logger = logging.getLogger(__name__)

PredictionTables = Dict[str, pd.DataFrame]


class IndirectEffectsAnalyzer:
    """간접효과 예측 그리드 조립 클래스"""

    def __init__(self, config: Optional[IndirectEffectsConfig] = None):
        """
        간접효과 분석기 초기화

        Args:
            config (Optional[IndirectEffectsConfig]): 분석 설정
        """
        from .config import DEFAULT_CONFIG
        self.config = config or DEFAULT_CONFIG
        self.data_loader = IndirectDataLoader(self.config)

    def indirect_predictions(self, model_mediator: Any, model_outcome: Any,
                             exposure_var: str, mediator_var: str, data: pd.DataFrame,
                             n_points: Optional[int] = None,
                             conf_int: Optional[bool] = None,
                             ignore_random_effects: Optional[bool] = None) -> PredictionTables:
        """
        단순 매개모델 (E → M → O) 예측

        Args:
            model_mediator: M ~ E 적합 모델
            model_outcome: O ~ E + M 적합 모델
            exposure_var (str): 노출변수명
            mediator_var (str): 매개변수명
            data (pd.DataFrame): 원자료 (범위 계산에만 사용)
            n_points (Optional[int]): 그리드 점 개수 (기본: 설정값 30)
            conf_int (Optional[bool]): 신뢰구간 계산 여부
            ignore_random_effects (Optional[bool]): 무선효과 제외 여부

        Returns:
            Dict[str, pd.DataFrame]: pred_M_E, pred_O_E, pred_O_M, pred_O_ME
        """
        config = self.config.with_overrides(
            n_points=n_points, conf_int=conf_int, ignore_random_effects=ignore_random_effects
        )
        logger.info(f"간접효과 예측 시작: {exposure_var} → {mediator_var} → O")

        try:
            self.data_loader.validate_variables(data, [exposure_var, mediator_var])
            mediator = self._as_predictor(model_mediator, config)
            outcome = self._as_predictor(model_outcome, config)

            exposure_grid = evenly_spaced(data, exposure_var, config.n_points)
            mediator_grid = evenly_spaced(data, mediator_var, config.n_points)

            # 직접효과: M ~ E
            pred_M_E = self._predict(mediator, single_column_grid(exposure_var, exposure_grid),
                                     config, 'pred_M_E')

            # 직접효과: O ~ E (M은 대표값)
            pred_O_E = self._predict(outcome, single_column_grid(exposure_var, exposure_grid),
                                     config, 'pred_O_E')

            # 직접효과: O ~ M (E는 대표값)
            pred_O_M = self._predict(outcome, single_column_grid(mediator_var, mediator_grid),
                                     config, 'pred_O_M')

            # 간접효과: O ~ M(E)
            substitution = build_substitution_grid(pred_M_E, mediator_var, [exposure_var])
            pred_O_ME = attach_labels(
                self._predict(outcome, substitution.query, config, 'pred_O_ME'),
                substitution
            )

        except IndirectEffectsError as e:
            logger.error(f"간접효과 예측 실패: {e}")
            raise

        logger.info("간접효과 예측 완료")
        return OrderedDict([
            ('pred_M_E', pred_M_E),
            ('pred_O_E', pred_O_E),
            ('pred_O_M', pred_O_M),
            ('pred_O_ME', pred_O_ME),
        ])

    def indirect_predictions_interaction(self, model_mediator: Any, model_outcome: Any,
                                         exposure1_var: str, exposure2_var: str,
                                         mediator_var: str, data: pd.DataFrame,
                                         exposure1_values: Optional[Sequence[float]] = None,
                                         n_points: Optional[int] = None,
                                         conf_int: Optional[bool] = None,
                                         ignore_random_effects: Optional[bool] = None) -> PredictionTables:
        """
        상호작용하는 노출변수 (E1*E2 → M → O) 예측

        E1은 이산 수준(기본 -1, 0, 1), E2는 관측 범위의 등간격 값으로 곱 그리드를 만듭니다.
        곱 그리드에서는 E1이 가장 빠르게 변합니다.

        Returns:
            Dict[str, pd.DataFrame]: pred_M_E1E2, pred_O_E1E2, pred_O_M, pred_O_ME1E2
        """
        config = self.config.with_overrides(
            exposure1_values=exposure1_values, n_points=n_points,
            conf_int=conf_int, ignore_random_effects=ignore_random_effects
        )
        logger.info(f"상호작용 간접효과 예측 시작: {exposure1_var}*{exposure2_var} → {mediator_var} → O")

        try:
            self.data_loader.validate_variables(data, [exposure1_var, exposure2_var, mediator_var])
            mediator = self._as_predictor(model_mediator, config)
            outcome = self._as_predictor(model_outcome, config)

            exposure2_grid = evenly_spaced(data, exposure2_var, config.n_points)
            mediator_grid = evenly_spaced(data, mediator_var, config.n_points)
            exposure_grid = expand_grid([
                (exposure1_var, config.exposure1_values),
                (exposure2_var, exposure2_grid),
            ])

            # 직접효과: M ~ E1*E2
            pred_M_E1E2 = self._predict(mediator, exposure_grid, config, 'pred_M_E1E2')

            # 직접효과: O ~ E1*E2 (M은 대표값)
            pred_O_E1E2 = self._predict(outcome, exposure_grid, config, 'pred_O_E1E2')

            # 직접효과: O ~ M (E1, E2는 대표값)
            pred_O_M = self._predict(outcome, single_column_grid(mediator_var, mediator_grid),
                                     config, 'pred_O_M')

            # 간접효과: O ~ M(E1*E2)
            substitution = build_substitution_grid(
                pred_M_E1E2, mediator_var, [exposure1_var, exposure2_var]
            )
            pred_O_ME1E2 = attach_labels(
                self._predict(outcome, substitution.query, config, 'pred_O_ME1E2'),
                substitution
            )

        except IndirectEffectsError as e:
            logger.error(f"상호작용 간접효과 예측 실패: {e}")
            raise

        logger.info("상호작용 간접효과 예측 완료")
        return OrderedDict([
            ('pred_M_E1E2', pred_M_E1E2),
            ('pred_O_E1E2', pred_O_E1E2),
            ('pred_O_M', pred_O_M),
            ('pred_O_ME1E2', pred_O_ME1E2),
        ])

    def indirect_predictions_mediator_interaction(self, model_mediator1: Any, model_mediator2: Any,
                                                  model_outcome: Any, exposure_var: str,
                                                  mediator1_var: str, mediator2_var: str,
                                                  data: pd.DataFrame,
                                                  mediator2_quantiles: Optional[Sequence[float]] = None,
                                                  n_points: Optional[int] = None,
                                                  conf_int: Optional[bool] = None,
                                                  ignore_random_effects: Optional[bool] = None) -> PredictionTables:
        """
        상호작용하는 매개변수 (E → M1*M2 → O) 예측

        M1은 관측 범위의 등간격 값, M2는 관측 분위수(기본 10/50/90%)에 고정합니다.
        간접효과 테이블은 예측된 M1 값과 M2 분위수의 곱이며, M2 수준마다
        노출변수 그리드가 한 번씩 반복됩니다.

        Returns:
            Dict[str, pd.DataFrame]: pred_M1_E, pred_M2_E, pred_O_E, pred_O_M1M2, pred_O_M1M2E
        """
        config = self.config.with_overrides(
            mediator2_quantiles=mediator2_quantiles, n_points=n_points,
            conf_int=conf_int, ignore_random_effects=ignore_random_effects
        )
        logger.info(f"매개변수 상호작용 간접효과 예측 시작: {exposure_var} → {mediator1_var}*{mediator2_var} → O")

        try:
            self.data_loader.validate_variables(data, [exposure_var, mediator1_var, mediator2_var])
            mediator1 = self._as_predictor(model_mediator1, config)
            mediator2 = self._as_predictor(model_mediator2, config)
            outcome = self._as_predictor(model_outcome, config)

            exposure_grid = evenly_spaced(data, exposure_var, config.n_points)
            mediator1_grid = evenly_spaced(data, mediator1_var, config.n_points)
            mediator2_levels = observed_quantiles(data, mediator2_var, config.mediator2_quantiles)
            logger.debug(f"{mediator2_var} 분위수 {config.mediator2_quantiles} → {mediator2_levels}")

            # 직접효과: M1 ~ E, M2 ~ E
            pred_M1_E = self._predict(mediator1, single_column_grid(exposure_var, exposure_grid),
                                      config, 'pred_M1_E')
            pred_M2_E = self._predict(mediator2, single_column_grid(exposure_var, exposure_grid),
                                      config, 'pred_M2_E')

            # 직접효과: O ~ E (M1, M2는 대표값)
            pred_O_E = self._predict(outcome, single_column_grid(exposure_var, exposure_grid),
                                     config, 'pred_O_E')

            # 직접효과: O ~ M1*M2 (E는 대표값)
            mediator_grid = expand_grid([
                (mediator1_var, mediator1_grid),
                (mediator2_var, mediator2_levels),
            ])
            pred_O_M1M2 = self._predict(outcome, mediator_grid, config, 'pred_O_M1M2')

            # 간접효과: O ~ M1(E)*M2 (예측된 M1 × 고정된 M2 분위수)
            substitution = build_substitution_grid(
                pred_M1_E, mediator1_var, [exposure_var],
                crossed=(mediator2_var, mediator2_levels)
            )
            pred_O_M1M2E = attach_labels(
                self._predict(outcome, substitution.query, config, 'pred_O_M1M2E'),
                substitution
            )

        except IndirectEffectsError as e:
            logger.error(f"매개변수 상호작용 간접효과 예측 실패: {e}")
            raise

        logger.info("매개변수 상호작용 간접효과 예측 완료")
        return OrderedDict([
            ('pred_M1_E', pred_M1_E),
            ('pred_M2_E', pred_M2_E),
            ('pred_O_E', pred_O_E),
            ('pred_O_M1M2', pred_O_M1M2),
            ('pred_O_M1M2E', pred_O_M1M2E),
        ])

    def _as_predictor(self, model: Any, config: IndirectEffectsConfig) -> PredictionBackend:
        return as_predictor(model, confidence_level=config.confidence_level,
                            group_var=config.group_var)

    def _predict(self, predictor: PredictionBackend, grid: pd.DataFrame,
                 config: IndirectEffectsConfig, label: str) -> pd.DataFrame:
        return predict_grid(
            predictor, grid,
            conf_int=config.conf_int,
            ignore_random_effects=config.ignore_random_effects,
            label=label,
        )


# 편의 함수들
# 지정하지 않은 인자는 None으로 두어 config(기본: 30점, E1 = -1, 0, 1, M2 분위수 0.1, 0.5, 0.9) 값을 따릅니다.
def indirect_predictions(model_mediator: Any, model_outcome: Any,
                         exposure_var: str, mediator_var: str, data: pd.DataFrame,
                         n_points: Optional[int] = None, conf_int: Optional[bool] = None,
                         ignore_random_effects: Optional[bool] = None,
                         config: Optional[IndirectEffectsConfig] = None) -> PredictionTables:
    """단순 매개모델 간접효과 예측 편의 함수"""
    analyzer = IndirectEffectsAnalyzer(config)
    return analyzer.indirect_predictions(
        model_mediator, model_outcome, exposure_var, mediator_var, data,
        n_points=n_points, conf_int=conf_int, ignore_random_effects=ignore_random_effects
    )


def indirect_predictions_interaction(model_mediator: Any, model_outcome: Any,
                                     exposure1_var: str, exposure2_var: str, mediator_var: str,
                                     data: pd.DataFrame,
                                     exposure1_values: Optional[Sequence[float]] = None,
                                     n_points: Optional[int] = None, conf_int: Optional[bool] = None,
                                     ignore_random_effects: Optional[bool] = None,
                                     config: Optional[IndirectEffectsConfig] = None) -> PredictionTables:
    """상호작용하는 노출변수 간접효과 예측 편의 함수"""
    analyzer = IndirectEffectsAnalyzer(config)
    return analyzer.indirect_predictions_interaction(
        model_mediator, model_outcome, exposure1_var, exposure2_var, mediator_var, data,
        exposure1_values=list(exposure1_values) if exposure1_values is not None else None,
        n_points=n_points, conf_int=conf_int, ignore_random_effects=ignore_random_effects
    )


def indirect_predictions_mediator_interaction(model_mediator1: Any, model_mediator2: Any,
                                              model_outcome: Any, exposure_var: str,
                                              mediator1_var: str, mediator2_var: str,
                                              data: pd.DataFrame,
                                              mediator2_quantiles: Optional[Sequence[float]] = None,
                                              n_points: Optional[int] = None,
                                              conf_int: Optional[bool] = None,
                                              ignore_random_effects: Optional[bool] = None,
                                              config: Optional[IndirectEffectsConfig] = None) -> PredictionTables:
    """상호작용하는 매개변수 간접효과 예측 편의 함수"""
    analyzer = IndirectEffectsAnalyzer(config)
    return analyzer.indirect_predictions_mediator_interaction(
        model_mediator1, model_mediator2, model_outcome, exposure_var,
        mediator1_var, mediator2_var, data,
        mediator2_quantiles=list(mediator2_quantiles) if mediator2_quantiles is not None else None,
        n_points=n_points, conf_int=conf_int, ignore_random_effects=ignore_random_effects
    )
