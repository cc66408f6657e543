"""Load generation engine: dispatch, outcome recording, aggregation."""

from .aggregator import aggregate
from .dispatcher import Dispatcher, create_client
from .errors import ConfigurationError, DataLoadError, InternalDispatchError, PressrError
from .histogram import HistogramSettings, LatencyHistogram
from .models import AggregateResult, ErrorKind, HttpMethod, RequestOutcome
from .runner import LoadTestConfig, run_load_test, send_probe
from .template import RequestData, RequestTemplate, load_request_data

__all__ = [
    "AggregateResult",
    "ConfigurationError",
    "DataLoadError",
    "Dispatcher",
    "ErrorKind",
    "HistogramSettings",
    "HttpMethod",
    "InternalDispatchError",
    "LatencyHistogram",
    "LoadTestConfig",
    "PressrError",
    "RequestData",
    "RequestOutcome",
    "RequestTemplate",
    "aggregate",
    "create_client",
    "load_request_data",
    "run_load_test",
    "send_probe",
]
