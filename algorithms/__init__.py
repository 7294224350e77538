from .math_tools import MathTools
from .one_rm_calculators import OneRMCalculators
from .metric_normalizer import MetricNormalizer
from .trend_estimator import TrendEstimator
from .plateau_detector import PlateauDetector

__all__ = [
    "MathTools",
    "OneRMCalculators",
    "MetricNormalizer",
    "TrendEstimator",
    "PlateauDetector",
]
