"""
Grid Builder Module

예측 그리드 생성 모듈입니다.
관측 범위에 따른 등간격 그리드, 분위수 수준, 데카르트 곱 그리드,
그리고 매개변수 예측값을 결과모델에 대입하기 위한 대입 그리드(SubstitutionGrid)를 만듭니다.

대입 그리드의 질의 열(query)과 라벨 열(labels)은 하나의 중간 테이블에서 함께 잘라내므로
두 테이블의 행 대응은 구조적으로 보장됩니다.
"""

import pandas as pd
import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union, Any
import logging

from .exceptions import GridShapeMismatchError, VariableLookupError

logger = logging.getLogger(__name__)

GridColumns = Union[Dict[str, Sequence[float]], Sequence[Tuple[str, Sequence[float]]]]


@dataclass(frozen=True)
class SubstitutionGrid:
    """결과모델 질의 그리드와 노출변수 라벨의 쌍"""

    query: pd.DataFrame
    labels: pd.DataFrame

    def __post_init__(self):
        if len(self.query) != len(self.labels):
            raise GridShapeMismatchError(
                f"대입 그리드 행 수 불일치: query={len(self.query)}, labels={len(self.labels)}"
            )

    def __len__(self) -> int:
        return len(self.query)


def observed_range(data: pd.DataFrame, var: str) -> Tuple[float, float]:
    """결측을 제외한 관측 최소/최대값"""
    if var not in data.columns:
        raise VariableLookupError([var], where="data")

    column = data[var].dropna()
    if column.empty:
        raise ValueError(f"{var}에 관측값이 없습니다.")

    return float(column.min()), float(column.max())


def evenly_spaced(data: pd.DataFrame, var: str, n_points: int) -> np.ndarray:
    """관측 최소값부터 최대값까지 n_points개의 등간격 값 (1개면 최소값만)"""
    low, high = observed_range(data, var)
    grid = np.linspace(low, high, n_points)

    # 부동소수점 누적 오차 없이 양 끝점을 관측값과 일치시킴
    grid[0] = low
    if n_points > 1:
        grid[-1] = high
    return grid


def observed_quantiles(data: pd.DataFrame, var: str, probs: Sequence[float]) -> np.ndarray:
    """
    결측을 제외한 분위수 (선형 보간, R type 7)

    Args:
        data (pd.DataFrame): 관측 데이터
        var (str): 변수명
        probs (Sequence[float]): 분위 확률들 (입력 순서 유지)

    Returns:
        np.ndarray: 확률별 분위수 값
    """
    if var not in data.columns:
        raise VariableLookupError([var], where="data")

    column = data[var].dropna().to_numpy(dtype=float)
    if column.size == 0:
        raise ValueError(f"{var}에 관측값이 없습니다.")

    return np.quantile(column, np.asarray(probs, dtype=float))


def single_column_grid(var: str, values: Sequence[float]) -> pd.DataFrame:
    """단일 변수 그리드"""
    return pd.DataFrame({var: np.asarray(values, dtype=float)})


def expand_grid(columns: GridColumns) -> pd.DataFrame:
    """
    데카르트 곱 그리드 생성

    첫 번째 열이 가장 빠르게 변합니다 (R expand.grid와 같은 순서).

    Args:
        columns: {변수명: 값들} 또는 [(변수명, 값들), ...]

    Returns:
        pd.DataFrame: 곱 그리드
    """
    items = list(columns.items()) if isinstance(columns, dict) else list(columns)
    names = [name for name, _ in items]
    if len(set(names)) != len(names):
        raise ValueError(f"그리드 변수명이 중복되었습니다: {names}")

    arrays = [np.asarray(values, dtype=float) for _, values in items]
    total = int(np.prod([len(a) for a in arrays])) if arrays else 0

    if total == 0:
        return pd.DataFrame({name: np.array([], dtype=float) for name in names})

    grid = {}
    repeat = 1
    for name, values in zip(names, arrays):
        block = np.repeat(values, repeat)
        grid[name] = np.tile(block, total // len(block))
        repeat *= len(values)

    return pd.DataFrame(grid)


def build_substitution_grid(mediator_predictions: pd.DataFrame, mediator_var: str,
                            label_vars: Sequence[str],
                            crossed: Optional[Tuple[str, Sequence[float]]] = None) -> SubstitutionGrid:
    """
    매개변수 예측값으로 결과모델 대입 그리드 생성

    매개모델 예측 테이블의 estimate 열을 mediator_var 값으로 사용하고,
    label_vars 열을 같은 행에 함께 싣습니다. crossed가 주어지면 (변수명, 수준값들)과
    교차하며, 예측 블록이 가장 빠르게 변하므로 라벨은 수준마다 한 번씩 반복됩니다.

    Args:
        mediator_predictions (pd.DataFrame): 매개모델 예측 테이블
        mediator_var (str): 결과모델에서의 매개변수 이름
        label_vars (Sequence[str]): 다시 붙일 노출변수 열들
        crossed (Optional[Tuple[str, Sequence[float]]]): 교차할 고정 수준

    Returns:
        SubstitutionGrid: 질의 그리드와 라벨
    """
    label_vars = list(label_vars)
    required = ['estimate'] + label_vars
    missing = [col for col in required if col not in mediator_predictions.columns]
    if missing:
        raise VariableLookupError(missing, where="mediator prediction table")

    paired = pd.DataFrame({mediator_var: mediator_predictions['estimate'].to_numpy(dtype=float)})
    for var in label_vars:
        paired[var] = mediator_predictions[var].to_numpy()

    query_columns = [mediator_var]
    if crossed is not None:
        crossed_var, levels = crossed
        levels = np.asarray(levels, dtype=float)
        n_block = len(paired)
        paired = paired.iloc[np.tile(np.arange(n_block), len(levels))].reset_index(drop=True)
        paired[crossed_var] = np.repeat(levels, n_block)
        query_columns.append(crossed_var)

    logger.debug(f"대입 그리드 생성: {len(paired)}행, query={query_columns}, labels={label_vars}")

    return SubstitutionGrid(
        query=paired[query_columns].reset_index(drop=True),
        labels=paired[label_vars].reset_index(drop=True),
    )


def attach_labels(predictions: pd.DataFrame, substitution: SubstitutionGrid) -> pd.DataFrame:
    """
    결과모델 예측 테이블에 노출변수 라벨을 위치 기준으로 부착

    Raises:
        GridShapeMismatchError: 행 수 또는 질의값 순서가 대입 그리드와 다른 경우
    """
    if len(predictions) != len(substitution):
        raise GridShapeMismatchError(
            f"라벨 부착 불가: 예측 {len(predictions)}행, 대입 그리드 {len(substitution)}행"
        )

    for col in substitution.query.columns:
        if col not in predictions.columns:
            continue
        returned = predictions[col].to_numpy(dtype=float)
        expected = substitution.query[col].to_numpy(dtype=float)
        if not np.allclose(returned, expected, equal_nan=True):
            raise GridShapeMismatchError(f"예측 테이블의 {col} 행 순서가 대입 그리드와 다릅니다.")

    labelled = predictions.reset_index(drop=True).copy()
    for col in substitution.labels.columns:
        labelled[col] = substitution.labels[col].to_numpy()

    return labelled
