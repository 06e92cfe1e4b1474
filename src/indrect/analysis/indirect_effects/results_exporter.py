"""
Indirect Effects Results Exporter Module

간접효과 예측 테이블을 CSV, JSON 메타데이터, 요약보고서 형태로 저장하는 모듈입니다.
"""

import pandas as pd
import numpy as np
import json
from typing import Any, Dict, Optional
from pathlib import Path
from datetime import datetime
import logging

from .config import IndirectEffectsConfig

logger = logging.getLogger(__name__)


class IndirectResultsExporter:
    """간접효과 예측 결과 저장 클래스"""

    def __init__(self, config: Optional[IndirectEffectsConfig] = None):
        """
        결과 저장기 초기화

        Args:
            config (Optional[IndirectEffectsConfig]): 분석 설정
        """
        from .config import DEFAULT_CONFIG
        self.config = config or DEFAULT_CONFIG
        self.results_dir = Path(self.config.results_dir)
        self.results_dir.mkdir(parents=True, exist_ok=True)

        self.timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

        logger.info(f"결과 저장기 초기화: {self.results_dir}")

    def export_prediction_tables(self, results: Dict[str, pd.DataFrame],
                                 analysis_name: str = "indirect_effects",
                                 variables: Optional[Dict[str, str]] = None,
                                 settings: Optional[IndirectEffectsConfig] = None) -> Dict[str, Path]:
        """
        예측 테이블 저장 (CSV, JSON, 보고서)

        Args:
            results (Dict[str, pd.DataFrame]): 예측 테이블들 (예: pred_M_E, pred_O_ME)
            analysis_name (str): 분석명 (파일명에 사용)
            variables (Optional[Dict[str, str]]): 역할별 변수명 (보고서용)
            settings (Optional[IndirectEffectsConfig]): 예측에 실제 사용한 설정 (기본: 저장기 설정)

        Returns:
            Dict[str, Path]: 저장된 파일 경로들
        """
        logger.info(f"예측 테이블 저장 시작: {analysis_name} ({len(results)}개 테이블)")

        saved_files = {}
        try:
            if self.config.save_csv:
                for table_name, table in results.items():
                    csv_file = self.results_dir / f"{analysis_name}_{table_name}_{self.timestamp}.csv"
                    table.to_csv(csv_file, index=False, encoding='utf-8-sig')
                    saved_files[table_name] = csv_file

            if self.config.save_json:
                saved_files['json'] = self._save_metadata(results, analysis_name, variables,
                                                          settings or self.config)

            if self.config.save_report:
                saved_files['report'] = self._save_summary_report(results, analysis_name, variables)

        except OSError as e:
            logger.error(f"결과 저장 실패: {e}")
            raise

        logger.info(f"결과 저장 완료: {len(saved_files)}개 파일")
        return saved_files

    def _table_metadata(self, table: pd.DataFrame) -> Dict[str, Any]:
        estimate = table['estimate'] if 'estimate' in table.columns else pd.Series(dtype=float)
        return {
            'n_rows': len(table),
            'columns': list(table.columns),
            'estimate_min': estimate.min() if len(estimate) else None,
            'estimate_max': estimate.max() if len(estimate) else None,
            'has_conf_int': bool('conf.low' in table.columns and table['conf.low'].notna().any()),
        }

    def _save_metadata(self, results: Dict[str, pd.DataFrame], analysis_name: str,
                       variables: Optional[Dict[str, str]],
                       settings: IndirectEffectsConfig) -> Path:
        """JSON 메타데이터 저장"""
        json_file = self.results_dir / f"{analysis_name}_metadata_{self.timestamp}.json"

        metadata = {
            'analysis_name': analysis_name,
            'created_at': datetime.now().isoformat(timespec='seconds'),
            'variables': variables or {},
            'settings': {
                'n_points': settings.n_points,
                'conf_int': settings.conf_int,
                'confidence_level': settings.confidence_level,
                'ignore_random_effects': settings.ignore_random_effects,
            },
            'tables': {name: self._table_metadata(table) for name, table in results.items()},
        }

        with open(json_file, 'w', encoding='utf-8') as f:
            json.dump(self._convert_to_json_serializable(metadata), f, indent=2, ensure_ascii=False)

        return json_file

    def _convert_to_json_serializable(self, obj: Any) -> Any:
        """JSON 직렬화 가능한 형태로 변환"""
        if isinstance(obj, dict):
            return {key: self._convert_to_json_serializable(value) for key, value in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [self._convert_to_json_serializable(item) for item in obj]
        elif isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return None if np.isnan(obj) else float(obj)
        elif isinstance(obj, float) and np.isnan(obj):
            return None
        elif isinstance(obj, np.bool_):
            return bool(obj)
        return obj

    def _save_summary_report(self, results: Dict[str, pd.DataFrame], analysis_name: str,
                             variables: Optional[Dict[str, str]]) -> Path:
        """요약 보고서 저장"""
        report_file = self.results_dir / f"{analysis_name}_summary_report_{self.timestamp}.txt"

        with open(report_file, 'w', encoding='utf-8') as f:
            f.write(self._generate_summary_report(results, analysis_name, variables))

        return report_file

    def _generate_summary_report(self, results: Dict[str, pd.DataFrame], analysis_name: str,
                                 variables: Optional[Dict[str, str]]) -> str:
        report_lines = []

        report_lines.append("=" * 80)
        report_lines.append("간접효과 예측 요약 보고서")
        report_lines.append("=" * 80)
        report_lines.append(f"분석명: {analysis_name}")
        report_lines.append(f"생성일시: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        report_lines.append("")

        if variables:
            report_lines.append("📋 분석 변수")
            report_lines.append("-" * 40)
            for role, name in variables.items():
                report_lines.append(f"{role}: {name}")
            report_lines.append("")

        report_lines.append("📊 예측 테이블")
        report_lines.append("-" * 40)
        for table_name, table in results.items():
            info = self._table_metadata(table)
            report_lines.append(f"{table_name}: {info['n_rows']}행")
            if info['estimate_min'] is not None:
                report_lines.append(
                    f"  estimate 범위: {info['estimate_min']:.4f} ~ {info['estimate_max']:.4f}"
                )
            report_lines.append(f"  신뢰구간: {'있음' if info['has_conf_int'] else '없음'}")
        report_lines.append("")

        return "\n".join(report_lines)


# 편의 함수들
def export_indirect_results(results: Dict[str, pd.DataFrame],
                            analysis_name: str = "indirect_effects",
                            variables: Optional[Dict[str, str]] = None,
                            settings: Optional[IndirectEffectsConfig] = None,
                            config: Optional[IndirectEffectsConfig] = None) -> Dict[str, Path]:
    """간접효과 예측 결과 저장 편의 함수"""
    exporter = IndirectResultsExporter(config)
    return exporter.export_prediction_tables(results, analysis_name, variables, settings)
