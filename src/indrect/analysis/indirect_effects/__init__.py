"""
Indirect Effects Module

적합된 매개모델과 결과모델로부터 직접효과·간접효과 예측 테이블을 만들고
시각화하는 기능을 제공합니다.

주요 기능:
1. 단순 매개 (E → M → O) 예측 테이블
2. 상호작용하는 노출변수 (E1*E2 → M → O) 예측 테이블
3. 상호작용하는 매개변수 (E → M1*M2 → O) 예측 테이블
4. 직접효과/간접효과 플롯
5. 결과 저장 (CSV, JSON, 보고서)
"""

from .config import (
    IndirectEffectsConfig,
    PlotConfig,
    DEFAULT_CONFIG,
    DEFAULT_PLOT_CONFIG,
    create_default_config,
    create_custom_config,
    configure_logging
)
from .exceptions import (
    IndirectEffectsError,
    VariableLookupError,
    PredictionBackendError,
    GridShapeMismatchError,
    ConfigurationError
)
from .data_loader import (
    IndirectDataLoader,
    load_dataset,
    validate_variables
)
from .grid_builder import (
    SubstitutionGrid,
    observed_range,
    evenly_spaced,
    observed_quantiles,
    single_column_grid,
    expand_grid,
    build_substitution_grid,
    attach_labels
)
from .prediction_backend import (
    PredictionBackend,
    StatsmodelsPredictor,
    CallablePredictor,
    as_predictor,
    predict_grid
)
from .indirect_analyzer import (
    IndirectEffectsAnalyzer,
    indirect_predictions,
    indirect_predictions_interaction,
    indirect_predictions_mediator_interaction
)
from .visualizer import (
    IndirectEffectsVisualizer,
    plot_direct_effect,
    plot_indirect_effect,
    plot_indirect_interaction,
    plot_indirect_mediator_interaction
)
from .results_exporter import (
    IndirectResultsExporter,
    export_indirect_results
)

__version__ = "0.1.0"
__all__ = [
    # Configuration
    'IndirectEffectsConfig',
    'PlotConfig',
    'DEFAULT_CONFIG',
    'DEFAULT_PLOT_CONFIG',
    'create_default_config',
    'create_custom_config',
    'configure_logging',

    # Errors
    'IndirectEffectsError',
    'VariableLookupError',
    'PredictionBackendError',
    'GridShapeMismatchError',
    'ConfigurationError',

    # Data
    'IndirectDataLoader',
    'load_dataset',
    'validate_variables',

    # Grids
    'SubstitutionGrid',
    'observed_range',
    'evenly_spaced',
    'observed_quantiles',
    'single_column_grid',
    'expand_grid',
    'build_substitution_grid',
    'attach_labels',

    # Prediction
    'PredictionBackend',
    'StatsmodelsPredictor',
    'CallablePredictor',
    'as_predictor',
    'predict_grid',

    # Core analysis
    'IndirectEffectsAnalyzer',
    'indirect_predictions',
    'indirect_predictions_interaction',
    'indirect_predictions_mediator_interaction',

    # Visualization
    'IndirectEffectsVisualizer',
    'plot_direct_effect',
    'plot_indirect_effect',
    'plot_indirect_interaction',
    'plot_indirect_mediator_interaction',

    # Export
    'IndirectResultsExporter',
    'export_indirect_results'
]
