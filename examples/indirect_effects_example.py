#!/usr/bin/env python3
"""
간접효과 예측 예시

모의 데이터로 세 가지 매개 구조를 적합하고 예측 테이블, 플롯, 결과 파일을 생성합니다.
1. 단순 매개: E → M → O (포아송 매개모델, 로짓 결과모델)
2. 상호작용하는 노출변수: E1*E2 → M → O
3. 상호작용하는 매개변수: E → M1*M2 → O
"""

import sys
import logging
from pathlib import Path

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf

# src 경로 추가
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from indrect import (
    IndirectEffectsAnalyzer,
    IndirectEffectsVisualizer,
    IndirectResultsExporter,
    configure_logging,
    create_custom_config,
)

logger = logging.getLogger(__name__)

N = 500
POISSON = sm.families.Poisson()
BINOMIAL = sm.families.Binomial()


def inv_logit(x):
    return 1 / (1 + np.exp(-x))


def simulate_simple(rng) -> pd.DataFrame:
    E = rng.normal(0, 1, N)
    M = rng.poisson(np.exp(4 + 0.1 * E))
    O = rng.binomial(1, inv_logit(-3 + 0.1 * E + 0.05 * M))
    return pd.DataFrame({'E': E, 'M': M, 'O': O})


def simulate_interaction(rng) -> pd.DataFrame:
    E1 = rng.normal(0, 1, N)
    E2 = rng.poisson(3, N)
    M = rng.poisson(np.exp(0.3 * E1 + 0.2 * E2 + 0.05 * E1 * E2))
    O = rng.binomial(1, inv_logit(-1 + 0.1 * E1 + 0.2 * E2 - 0.5 * E1 * E2 - 0.25 * M))
    return pd.DataFrame({'E1': E1, 'E2': E2, 'M': M, 'O': O})


def simulate_mediator_interaction(rng) -> pd.DataFrame:
    E = rng.normal(0, 1, N)
    M1 = rng.poisson(np.exp(4 + 0.1 * E))
    M2 = rng.poisson(np.exp(1 - 0.2 * E))
    O = rng.binomial(1, inv_logit(-3 + 0.1 * E + 0.05 * M1 + 0.03 * M2 + 0.01 * M1 * M2))
    return pd.DataFrame({'E': E, 'M1': M1, 'M2': M2, 'O': O})


def main():
    config = create_custom_config(n_points=20, results_dir="indirect_effects_results")
    configure_logging(config)

    rng = np.random.default_rng(333)
    analyzer = IndirectEffectsAnalyzer(config)
    visualizer = IndirectEffectsVisualizer()
    exporter = IndirectResultsExporter(config)
    plots_dir = Path(config.results_dir) / "plots"

    # 1. 단순 매개
    data1 = simulate_simple(rng)
    mod_M = smf.glm('M ~ E', data=data1, family=POISSON).fit()
    mod_O = smf.glm('O ~ E + M', data=data1, family=BINOMIAL).fit()
    preds1 = analyzer.indirect_predictions(mod_M, mod_O, 'E', 'M', data1)
    for name, table in preds1.items():
        logger.info(f"{name}: {len(table)}행")

    visualizer.save_figure(
        visualizer.plot_direct_effect(preds1['pred_M_E'], 'E', title="M ~ E",
                                      x_label="Exposure", y_label="Mediator"),
        plots_dir / "direct_M_E.png"
    )
    visualizer.save_figure(
        visualizer.plot_indirect_effect(preds1['pred_O_M'], preds1['pred_O_ME'], 'M', 'E'),
        plots_dir / "indirect_simple.png"
    )
    exporter.export_prediction_tables(preds1, "simple",
                                      variables={'exposure': 'E', 'mediator': 'M', 'outcome': 'O'})

    # 2. 상호작용하는 노출변수
    data2 = simulate_interaction(rng)
    mod_M2 = smf.glm('M ~ E1 * E2', data=data2, family=POISSON).fit()
    mod_O2 = smf.glm('O ~ E1 * E2 + M', data=data2, family=BINOMIAL).fit()
    settings2 = config.with_overrides(n_points=15, exposure1_values=[-1, 0, 1])
    preds2 = analyzer.indirect_predictions_interaction(mod_M2, mod_O2, 'E1', 'E2', 'M', data2,
                                                       exposure1_values=settings2.exposure1_values,
                                                       n_points=settings2.n_points)
    visualizer.save_figure(
        visualizer.plot_indirect_interaction(preds2['pred_O_ME1E2'], 'M', 'E1', 'E2'),
        plots_dir / "indirect_interaction.png"
    )
    exporter.export_prediction_tables(preds2, "interaction", settings=settings2)

    # 3. 상호작용하는 매개변수
    data3 = simulate_mediator_interaction(rng)
    mod_M1 = smf.glm('M1 ~ E', data=data3, family=POISSON).fit()
    mod_M2b = smf.glm('M2 ~ E', data=data3, family=POISSON).fit()
    mod_O3 = smf.glm('O ~ E + M1 * M2', data=data3, family=BINOMIAL).fit()
    preds3 = analyzer.indirect_predictions_mediator_interaction(
        mod_M1, mod_M2b, mod_O3, 'E', 'M1', 'M2', data3
    )
    visualizer.save_figure(
        visualizer.plot_indirect_mediator_interaction(preds3['pred_O_M1M2'], preds3['pred_O_M1M2E'],
                                                      'M1', 'M2', 'E'),
        plots_dir / "indirect_mediator_interaction.png"
    )
    exporter.export_prediction_tables(preds3, "mediator_interaction")

    logger.info(f"모든 결과 저장 완료: {config.results_dir}")


if __name__ == "__main__":
    main()
