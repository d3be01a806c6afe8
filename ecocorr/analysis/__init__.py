from .capital_flow import CapitalFlow, CapitalFlowEstimator, CapitalFlowResult, VolumeChange
from .correlation_matrix import (
    CorrelationAnalysis,
    CorrelationMatrix,
    CorrelationPair,
    NetworkGraph,
    generate_correlation_matrix,
    generate_network_graph,
    pearson_correlation,
)
from .correlator import EcosystemCorrelator, create_correlator
from .leadlag import LeadLagAnalysis, LeadLagRelationship, calculate_lag_matrix, find_optimal_lag
from .price_metrics import PriceMetrics
from .sentiment_metrics import SentimentMetrics
from .volume_metrics import VolumeMetrics

__all__ = [
    'CapitalFlow',
    'CapitalFlowEstimator',
    'CapitalFlowResult',
    'VolumeChange',
    'CorrelationAnalysis',
    'CorrelationMatrix',
    'CorrelationPair',
    'NetworkGraph',
    'generate_correlation_matrix',
    'generate_network_graph',
    'pearson_correlation',
    'EcosystemCorrelator',
    'create_correlator',
    'LeadLagAnalysis',
    'LeadLagRelationship',
    'calculate_lag_matrix',
    'find_optimal_lag',
    'PriceMetrics',
    'SentimentMetrics',
    'VolumeMetrics',
]
