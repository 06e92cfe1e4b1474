"""
Indirect Effects Data Loader Module

관측 데이터셋을 로드하고, 간접효과 예측에 필요한 변수가 존재하는지 검증하는 모듈입니다.
"""

import pandas as pd
import numpy as np
from typing import Dict, Iterable, List, Optional, Any, Union
from pathlib import Path
import logging

from .config import IndirectEffectsConfig
from .exceptions import VariableLookupError

logger = logging.getLogger(__name__)


class IndirectDataLoader:
    """간접효과 분석을 위한 데이터 로더 클래스"""

    def __init__(self, config: Optional[IndirectEffectsConfig] = None):
        """
        데이터 로더 초기화

        Args:
            config (Optional[IndirectEffectsConfig]): 분석 설정
        """
        from .config import DEFAULT_CONFIG
        self.config = config or DEFAULT_CONFIG

    def load_dataset(self, file_path: Union[str, Path]) -> pd.DataFrame:
        """
        관측 데이터셋 로드 (CSV, Excel, Parquet)

        Args:
            file_path (Union[str, Path]): 데이터 파일 경로

        Returns:
            pd.DataFrame: 관측 데이터
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"데이터 파일을 찾을 수 없습니다: {file_path}")

        suffix = file_path.suffix.lower()
        try:
            if suffix in ('.xlsx', '.xls'):
                data = pd.read_excel(file_path)
            elif suffix == '.parquet':
                data = pd.read_parquet(file_path)
            else:
                data = pd.read_csv(file_path)
        except Exception as e:
            logger.error(f"데이터 로드 실패 ({file_path}): {e}")
            raise

        if data.empty:
            raise ValueError(f"데이터가 비어있습니다: {file_path}")

        logger.info(f"데이터 로드 완료: {file_path.name} {data.shape}")
        return data

    def validate_variables(self, data: pd.DataFrame, variables: Iterable[str]) -> None:
        """
        분석 변수 존재 여부 검증

        Args:
            data (pd.DataFrame): 관측 데이터
            variables (Iterable[str]): 필요한 변수명들

        Raises:
            VariableLookupError: 데이터에 없는 변수가 있는 경우
        """
        variables = list(variables)
        missing = [var for var in variables if var not in data.columns]
        if missing:
            logger.error(f"데이터에 없는 변수: {missing}")
            raise VariableLookupError(missing, where="data")

        non_numeric = [var for var in variables
                       if not pd.api.types.is_numeric_dtype(data[var])]
        if non_numeric:
            logger.warning(f"수치형이 아닌 변수: {non_numeric}")

    def get_data_summary(self, data: pd.DataFrame,
                         variables: Optional[List[str]] = None) -> Dict[str, Any]:
        """데이터 요약 통계"""
        if variables is None:
            variables = list(data.select_dtypes(include=[np.number]).columns)
        self.validate_variables(data, variables)

        summary = {
            'n_observations': len(data),
            'n_variables': len(variables),
            'missing_values': data[variables].isnull().sum().to_dict(),
            'variables': {}
        }
        for var in variables:
            column = data[var]
            summary['variables'][var] = {
                'min': float(column.min()),
                'max': float(column.max()),
                'mean': float(column.mean()),
                'std': float(column.std()),
            }

        return summary


# 편의 함수들
def load_dataset(file_path: Union[str, Path],
                 config: Optional[IndirectEffectsConfig] = None) -> pd.DataFrame:
    """데이터셋 로드 편의 함수"""
    loader = IndirectDataLoader(config)
    return loader.load_dataset(file_path)


def validate_variables(data: pd.DataFrame, variables: Iterable[str]) -> None:
    """변수 존재 여부 검증 편의 함수"""
    IndirectDataLoader().validate_variables(data, list(variables))
