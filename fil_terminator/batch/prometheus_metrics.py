from __future__ import annotations

import json
import logging
import os
from typing import Mapping

from prometheus_client import CollectorRegistry, Gauge, push_to_gateway

from fil_terminator.core.domain.units import atto_to_fil

LOGGER = logging.getLogger(__name__)

_GAUGES = {
    "fil_terminator_operators_processed": "Operators processed in the batch",
    "fil_terminator_operators_failed": "Operators whose calculation failed",
    "fil_terminator_sectors_analysed": "Sectors analysed across successful operators",
    "fil_terminator_total_fee_fil": "Total recommended fee in FIL",
}


class PrometheusMetricsClient:
    """Pushgateway client for one-shot batch runs.

    Expected environment:
    - PROMETHEUS_PUSHGATEWAY_URL: URL to the Pushgateway; metrics are disabled
      when unset.

    Optional:
    - PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON: JSON object of string pairs
      used as grouping key, e.g. {"instance": "nightly-strategy"}.

    Delivery is best-effort; callers log and continue on failure.
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        env = os.environ if environ is None else environ
        self._pushgateway_url = env.get("PROMETHEUS_PUSHGATEWAY_URL")
        self._grouping_key = self._load_grouping_key(env)
        self._registry = CollectorRegistry()
        self._gauges = {
            name: Gauge(name, doc, labelnames=["mode"], registry=self._registry)
            for name, doc in _GAUGES.items()
        }

    def is_enabled(self) -> bool:
        return bool(self._pushgateway_url)

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    @staticmethod
    def _load_grouping_key(env: Mapping[str, str]) -> dict[str, str]:
        raw = env.get("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON")
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning("Invalid PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON; ignoring")
            return {}

        if not isinstance(data, dict):
            return {}

        return {k: v for k, v in data.items() if isinstance(k, str) and isinstance(v, str)}

    def record_batch(
        self,
        *,
        mode: str,
        operators: int,
        failed: int,
        sectors: int,
        total_fee: int,
    ) -> None:
        """Set batch gauges; ``total_fee`` is in attoFIL."""
        values = {
            "fil_terminator_operators_processed": operators,
            "fil_terminator_operators_failed": failed,
            "fil_terminator_sectors_analysed": sectors,
            "fil_terminator_total_fee_fil": float(atto_to_fil(total_fee)),
        }
        for name, value in values.items():
            self._gauges[name].labels(mode=mode).set(value)

    def push_all(self, *, job: str) -> None:
        if not self._pushgateway_url:
            return

        push_to_gateway(
            gateway=self._pushgateway_url,
            job=job,
            registry=self._registry,
            grouping_key=self._grouping_key,
        )

        LOGGER.info(
            "Prometheus metrics pushed",
            extra={"job": job, "grouping_key": self._grouping_key},
        )
