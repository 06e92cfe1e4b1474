"""
Prediction Backend Module

적합된 모델을 예측 그리드에 대해 평가하는 외부 예측 기능의 어댑터 모듈입니다.
StatsModels 결과 객체(OLS/GLM/이산모형/MixedLM)와 임의의 호출 가능 객체를
동일한 인터페이스(predict(grid, conf_int, ignore_random_effects))로 감쌉니다.

반환 테이블 형식:
    estimate, std.error, conf.low, conf.high, <그리드 변수들>, <대표값으로 채운 공변량들>
"""

import pandas as pd
import numpy as np
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence
import logging
from scipy import stats

# StatsModels / patsy 임포트
try:
    import patsy
    from statsmodels.regression.mixed_linear_model import MixedLM
except ImportError as e:
    logging.error("StatsModels 라이브러리를 찾을 수 없습니다. pip install statsmodels로 설치해주세요.")
    raise e

from .exceptions import GridShapeMismatchError, IndirectEffectsError, PredictionBackendError

logger = logging.getLogger(__name__)

ESTIMATE_COLUMNS = ['estimate', 'std.error', 'conf.low', 'conf.high']


class PredictionBackend(ABC):
    """예측 기능 인터페이스 (모델 핸들은 내부 구조를 노출하지 않음)"""

    name: str = "model"

    @abstractmethod
    def predict(self, grid: pd.DataFrame, conf_int: bool = True,
                ignore_random_effects: bool = True) -> pd.DataFrame:
        """
        그리드의 각 행에 대한 예측값과 신뢰구간 계산

        Args:
            grid (pd.DataFrame): 예측 그리드
            conf_int (bool): 신뢰구간 계산 여부
            ignore_random_effects (bool): 무선효과 제외 (모집단 수준 예측)

        Returns:
            pd.DataFrame: 그리드 행 순서를 유지한 예측 테이블 (최소 estimate 열)
        """


class StatsmodelsPredictor(PredictionBackend):
    """StatsModels 적합 결과에 대한 예측기"""

    def __init__(self, results: Any, confidence_level: float = 0.95,
                 group_var: Optional[str] = None, name: Optional[str] = None):
        """
        예측기 초기화

        Args:
            results: StatsModels 적합 결과 (fit()의 반환값)
            confidence_level (float): 신뢰수준
            group_var (Optional[str]): 조건부 예측에 사용할 집단 변수 (MixedLM)
            name (Optional[str]): 로그에 표시할 모델 이름
        """
        if not hasattr(results, 'model') or not hasattr(results, 'predict'):
            raise TypeError(f"StatsModels 적합 결과가 아닙니다: {type(results).__name__}")
        if confidence_level <= 0 or confidence_level >= 1:
            raise ValueError("confidence_level은 0과 1 사이의 값이어야 합니다.")

        self.results = results
        self.model = results.model
        self.confidence_level = confidence_level
        self.group_var = group_var
        self.name = name or type(self.model).__name__

    @property
    def alpha(self) -> float:
        return 1.0 - self.confidence_level

    @property
    def is_mixed(self) -> bool:
        return isinstance(self.model, MixedLM)

    @property
    def uses_formula(self) -> bool:
        return getattr(self.model, 'formula', None) is not None

    def predict(self, grid: pd.DataFrame, conf_int: bool = True,
                ignore_random_effects: bool = True) -> pd.DataFrame:
        newdata = self._complete_grid(grid)

        conditional = self.is_mixed and not ignore_random_effects
        if conditional and (self.group_var is None or self.group_var not in newdata.columns):
            raise ValueError(
                f"무선효과 포함 예측에는 집단 변수가 필요합니다: group_var={self.group_var}"
            )
        if not self.is_mixed and not ignore_random_effects:
            logger.debug(f"{self.name}: 무선효과가 없는 모델이므로 ignore_random_effects를 무시합니다.")

        if self.is_mixed:
            predicted = self._predict_mixed(newdata, conf_int, conditional)
        else:
            predicted = self._predict_fixed(newdata, conf_int)

        return pd.concat([predicted, newdata], axis=1)

    def _training_frame(self) -> pd.DataFrame:
        """모델 적합에 사용된 데이터"""
        frame = getattr(self.model.data, 'frame', None)
        if self.uses_formula and frame is not None:
            return frame
        return pd.DataFrame(np.asarray(self.model.exog), columns=list(self.model.exog_names))

    def _complete_grid(self, grid: pd.DataFrame) -> pd.DataFrame:
        """그리드에 없는 공변량을 학습 데이터의 대표값으로 채움 (수치형: 평균, 그 외와 집단 변수: 최빈값)"""
        newdata = grid.reset_index(drop=True).copy()
        training = self._training_frame()

        endog_name = self.model.endog_names
        skip = {endog_name} if isinstance(endog_name, str) else set(endog_name or [])

        filled = []
        for col in training.columns:
            if col in newdata.columns or col in skip:
                continue
            newdata[col] = _typical_value(training[col], categorical=(col == self.group_var))
            filled.append(col)

        if filled:
            logger.debug(f"{self.name}: 대표값으로 채운 공변량 {filled}")
        return newdata

    def _predict_fixed(self, newdata: pd.DataFrame, conf_int: bool) -> pd.DataFrame:
        """고정효과 모형 예측 (응답 척도)"""
        if self.uses_formula:
            exog = newdata
        else:
            exog = newdata[list(self.model.exog_names)].to_numpy(dtype=float)

        if not conf_int:
            estimate = np.asarray(self.results.predict(exog), dtype=float)
            missing = np.full(len(estimate), np.nan)
            return _stats_frame(estimate, missing, missing, missing)

        prediction = self.results.get_prediction(exog)
        estimate = _first_attribute(prediction, ('predicted_mean', 'predicted'))
        std_error = _first_attribute(prediction, ('se_mean', 'se'))
        bounds = np.asarray(prediction.conf_int(alpha=self.alpha), dtype=float)

        return _stats_frame(estimate, std_error, bounds[:, 0], bounds[:, 1])

    def _design_matrix(self, newdata: pd.DataFrame) -> np.ndarray:
        """
        고정효과 설계행렬

        포뮬러 모델은 적합 시 저장된 명세로 새 데이터를 변환합니다.
        statsmodels 0.14는 data.design_info(patsy), 0.15는 data.model_spec
        (patsy DesignInfo 또는 formulaic ModelSpec)에 명세를 저장합니다.
        """
        fe_names = list(self.model.exog_names)
        if not self.uses_formula:
            return newdata[fe_names].to_numpy(dtype=float)

        spec = getattr(self.model.data, 'model_spec', None)
        if spec is None:
            spec = getattr(self.model.data, 'design_info', None)

        if isinstance(spec, patsy.DesignInfo):
            design = patsy.build_design_matrices([spec], newdata, return_type='dataframe')[0]
        elif spec is not None and hasattr(spec, 'get_model_matrix'):
            design = pd.DataFrame(spec.get_model_matrix(newdata))
        else:
            raise ValueError(f"{self.name}: 포뮬러 명세를 찾을 수 없어 설계행렬을 만들 수 없습니다.")

        missing = [name for name in fe_names if name not in design.columns]
        if missing:
            raise ValueError(f"{self.name}: 설계행렬에 고정효과 열이 없습니다: {missing}")
        return design[fe_names].to_numpy(dtype=float)

    def _predict_mixed(self, newdata: pd.DataFrame, conf_int: bool,
                       conditional: bool) -> pd.DataFrame:
        """선형혼합모형 예측 (고정효과 + 선택적으로 집단별 무선절편)"""
        design = self._design_matrix(newdata)
        fe_params = np.asarray(self.results.fe_params, dtype=float)
        estimate = design @ fe_params

        if conditional:
            estimate = estimate + self._random_intercepts(newdata[self.group_var])

        if not conf_int:
            missing = np.full(len(estimate), np.nan)
            return _stats_frame(estimate, missing, missing, missing)

        # 고정효과 공분산 블록 (params 순서: 고정효과 → 무선효과 분산성분)
        k_fe = len(fe_params)
        cov_fe = np.asarray(self.results.cov_params(), dtype=float)[:k_fe, :k_fe]
        std_error = np.sqrt(np.einsum('ij,jk,ik->i', design, cov_fe, design))

        z_value = stats.norm.ppf(1 - self.alpha / 2)
        return _stats_frame(estimate, std_error,
                            estimate - z_value * std_error,
                            estimate + z_value * std_error)

    def _random_intercepts(self, groups: pd.Series) -> np.ndarray:
        """집단별 무선절편 (학습에 없던 집단은 0)"""
        if self.model.k_re != 1:
            raise ValueError("무선효과 포함 예측은 무선절편 모형만 지원합니다.")

        random_effects = self.results.random_effects
        offsets = []
        unseen = set()
        for group in groups:
            if group in random_effects:
                offsets.append(float(np.asarray(random_effects[group])[0]))
            else:
                unseen.add(group)
                offsets.append(0.0)

        if unseen:
            logger.warning(f"{self.name}: 학습 데이터에 없는 집단은 모집단 수준으로 예측합니다: {sorted(map(str, unseen))}")
        return np.asarray(offsets, dtype=float)


class CallablePredictor(PredictionBackend):
    """호출 가능 객체 func(grid, conf_int, ignore_random_effects)를 감싸는 예측기"""

    def __init__(self, func: Callable[..., Any], name: Optional[str] = None):
        if not callable(func):
            raise TypeError(f"호출 가능한 객체가 아닙니다: {func!r}")
        self.func = func
        self.name = name or getattr(func, '__name__', 'callable')

    def predict(self, grid: pd.DataFrame, conf_int: bool = True,
                ignore_random_effects: bool = True) -> pd.DataFrame:
        result = self.func(grid.copy(), conf_int, ignore_random_effects)
        if isinstance(result, pd.DataFrame):
            return result
        return pd.DataFrame({'estimate': np.asarray(result, dtype=float).ravel()})


def _typical_value(column: pd.Series, categorical: bool = False) -> Any:
    """수치형은 평균, 그 외는 최빈값"""
    if not categorical and pd.api.types.is_numeric_dtype(column) and not pd.api.types.is_bool_dtype(column):
        return float(column.mean())
    mode = column.mode(dropna=True)
    return mode.iloc[0] if len(mode) else np.nan


def _first_attribute(obj: Any, names: Sequence[str]) -> np.ndarray:
    """버전별로 이름이 다른 예측 결과 속성 조회"""
    for attr in names:
        value = getattr(obj, attr, None)
        if value is not None:
            return np.asarray(value, dtype=float)
    raise AttributeError(f"{type(obj).__name__}에 {names} 속성이 없습니다.")


def _stats_frame(estimate, std_error, conf_low, conf_high) -> pd.DataFrame:
    return pd.DataFrame({
        'estimate': np.asarray(estimate, dtype=float),
        'std.error': np.asarray(std_error, dtype=float),
        'conf.low': np.asarray(conf_low, dtype=float),
        'conf.high': np.asarray(conf_high, dtype=float),
    })


def as_predictor(model: Any, confidence_level: float = 0.95,
                 group_var: Optional[str] = None) -> PredictionBackend:
    """
    모델 핸들을 예측기로 변환

    Args:
        model: PredictionBackend, StatsModels 적합 결과, 또는 호출 가능 객체
        confidence_level (float): StatsModels 결과에 적용할 신뢰수준
        group_var (Optional[str]): MixedLM 조건부 예측용 집단 변수

    Returns:
        PredictionBackend: 예측기
    """
    if isinstance(model, PredictionBackend):
        return model
    if hasattr(model, 'model') and hasattr(model, 'predict'):
        return StatsmodelsPredictor(model, confidence_level=confidence_level, group_var=group_var)
    if callable(model):
        return CallablePredictor(model)
    raise TypeError(f"예측기로 변환할 수 없는 모델 객체입니다: {type(model).__name__}")


def predict_grid(predictor: PredictionBackend, grid: pd.DataFrame, conf_int: bool = True,
                 ignore_random_effects: bool = True, label: Optional[str] = None) -> pd.DataFrame:
    """
    예측기 호출 및 결과 테이블 정규화

    그리드의 행 순서와 값이 결과 테이블에 그대로 유지되는지 확인합니다.

    Args:
        predictor (PredictionBackend): 예측기
        grid (pd.DataFrame): 예측 그리드
        conf_int (bool): 신뢰구간 계산 여부
        ignore_random_effects (bool): 무선효과 제외 여부
        label (Optional[str]): 로그용 테이블 이름

    Returns:
        pd.DataFrame: estimate, std.error, conf.low, conf.high + 그리드/공변량 열

    Raises:
        PredictionBackendError: 예측기가 그리드를 거부한 경우
        GridShapeMismatchError: 결과 행 수나 순서가 그리드와 다른 경우
    """
    label = label or getattr(predictor, 'name', type(predictor).__name__)
    grid = grid.reset_index(drop=True)
    logger.debug(f"{label} 예측 호출: {len(grid)}행, 변수={list(grid.columns)}")

    try:
        raw = predictor.predict(grid.copy(), conf_int=conf_int,
                                ignore_random_effects=ignore_random_effects)
    except IndirectEffectsError:
        raise
    except Exception as e:
        logger.error(f"{label} 예측 실패: {e}")
        raise PredictionBackendError(f"{label}: 모델이 예측 그리드를 거부했습니다: {e}") from e

    if not isinstance(raw, pd.DataFrame):
        raise PredictionBackendError(f"{label}: 예측 결과가 DataFrame이 아닙니다 ({type(raw).__name__})")
    if 'estimate' not in raw.columns:
        raise PredictionBackendError(f"{label}: 예측 결과에 estimate 열이 없습니다.")
    if len(raw) != len(grid):
        raise GridShapeMismatchError(f"{label}: 예측 결과 {len(raw)}행, 그리드 {len(grid)}행")

    raw = raw.reset_index(drop=True)
    for col in grid.columns:
        if col in raw.columns and not _same_values(raw[col], grid[col]):
            raise GridShapeMismatchError(f"{label}: 예측 결과의 {col} 값/순서가 그리드와 다릅니다.")

    table = pd.DataFrame({
        col: raw[col].to_numpy(dtype=float) if col in raw.columns else np.full(len(raw), np.nan)
        for col in ESTIMATE_COLUMNS
    })
    for col in grid.columns:
        table[col] = grid[col].to_numpy()
    for col in raw.columns:
        if col not in table.columns:
            table[col] = raw[col].to_numpy()

    logger.debug(f"{label} 예측 완료")
    return table


def _same_values(returned: pd.Series, expected: pd.Series) -> bool:
    if pd.api.types.is_numeric_dtype(returned) and pd.api.types.is_numeric_dtype(expected):
        return bool(np.allclose(returned.to_numpy(dtype=float), expected.to_numpy(dtype=float),
                                equal_nan=True))
    return bool((returned.to_numpy() == expected.to_numpy()).all())
