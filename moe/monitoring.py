"""
Monitoring module for the Moe word learning backend.
Handles logging setup and optional CloudWatch metrics for word lookups.
"""

import os
import logging
from datetime import datetime, timezone
from typing import Dict, Optional
from pathlib import Path

import boto3
from botocore.exceptions import BotoCoreError, ClientError

# Create logs directory if it doesn't exist
logs_dir = Path(os.getenv('LOG_DIR', Path(__file__).parent.parent / 'logs'))
logs_dir.mkdir(parents=True, exist_ok=True)

# Configure logging (level controlled by LOG_LEVEL env; default INFO)
_log_level_name = os.getenv('LOG_LEVEL', 'INFO').strip().upper()
_log_level = getattr(logging, _log_level_name, logging.INFO)
# Force reconfigure root logger so uvicorn's defaults don't swallow our handlers
logging.basicConfig(
    level=_log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(logs_dir / 'moe.log', encoding='utf-8'),
        logging.StreamHandler()
    ],
    force=True,
)

logging.getLogger().setLevel(_log_level)
logging.getLogger('moe').setLevel(_log_level)
# httpx logs every request at INFO
logging.getLogger('httpx').setLevel(max(_log_level, logging.WARNING))
logger = logging.getLogger(__name__)


class LookupMonitor:
    """Publishes word lookup metrics to CloudWatch when enabled."""

    def __init__(self, environment: str = 'Development', enabled: bool = False, cloudwatch=None):
        self.environment = environment
        self.enabled = enabled
        self.namespace = f"MoeWordLookup/{environment}"
        self._cloudwatch = cloudwatch

    @property
    def cloudwatch(self):
        if self._cloudwatch is None:
            self._cloudwatch = boto3.client('cloudwatch')
        return self._cloudwatch

    def put_metric(self, metric_name: str, value: float, unit: str,
                   dimensions: Optional[Dict[str, str]] = None) -> None:
        """
        Put a metric to CloudWatch.

        Args:
            metric_name: Name of the metric
            value: Metric value
            unit: Metric unit (e.g., 'Count', 'Milliseconds')
            dimensions: Optional dictionary of dimension name-value pairs
        """
        if not self.enabled:
            logger.debug(f"Metric {metric_name}={value} {unit} {dimensions or {}} (CloudWatch disabled)")
            return
        try:
            metric_data = {
                'MetricName': metric_name,
                'Value': value,
                'Unit': unit,
                'Timestamp': datetime.now(timezone.utc)
            }

            if dimensions:
                metric_data['Dimensions'] = [
                    {'Name': k, 'Value': v} for k, v in dimensions.items()
                ]

            self.cloudwatch.put_metric_data(
                Namespace=self.namespace,
                MetricData=[metric_data]
            )
            logger.debug(f"Published metric {metric_name}: {value} {unit}")

        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to publish metric {metric_name}: {str(e)}")

    def track_tier(self, tier: str) -> None:
        """Track which tier answered a lookup."""
        self.put_metric(
            metric_name='TierResolved',
            value=1,
            unit='Count',
            dimensions={'Tier': tier}
        )

    def track_lookup_latency(self, tier: str, latency_ms: float) -> None:
        self.put_metric(
            metric_name='LookupLatency',
            value=latency_ms,
            unit='Milliseconds',
            dimensions={'Tier': tier}
        )

    def track_error(self, error_type: str) -> None:
        """Track error occurrence."""
        self.put_metric(
            metric_name='Errors',
            value=1,
            unit='Count',
            dimensions={'ErrorType': error_type}
        )


# Global monitor instance
monitor = LookupMonitor(
    os.getenv('ENVIRONMENT', 'Development'),
    enabled=os.getenv('ENABLE_CLOUDWATCH', 'false').strip().lower() in {'1', 'true', 'yes'},
)
