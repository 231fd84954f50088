"""
Helper utility functions.

This module contains reusable utility functions used by the HTTP layer.
"""

from typing import Dict, Any
import config
from nmf import label_rules
from nmf.feature_extractor import FEATURE_NAMES
from nmf.head_motion import MOTION_FEATURE_NAMES


def build_config_response() -> Dict[str, Any]:
    """
    Build a complete configuration response dictionary.

    This function aggregates all configuration settings into a single
    dictionary for the /config/all endpoint.

    Returns:
        dict: Complete configuration dictionary
    """
    return {
        "pipeline": config.get_pipeline_config(),
        "landmarkSource": config.get_landmark_source_config(),
        "features": list(FEATURE_NAMES) + list(MOTION_FEATURE_NAMES),
        "labels": [r.label for r in label_rules.get_rules()],
        "composites": [c.label for c in label_rules.get_composite_rules()],
        "thresholds": {
            "url": config.NMF_THRESHOLDS_URL,
            "path": config.NMF_THRESHOLDS_PATH,
        },
        "corpus": {
            "path": config.NMF_CORPUS_PATH,
        },
        "diagnostics": {
            "logLevel": config.LOG_LEVEL,
            "diagnosticLogging": config.NMF_DIAGNOSTIC_LOGGING,
            "diagnosticLogInterval": config.NMF_DIAGNOSTIC_LOG_INTERVAL,
        },
    }


def parse_order(value) -> bool:
    """Map ?order=newest|oldest to newest_first. Raises ValueError for anything else."""
    order = (value or "oldest").strip().lower()
    if order not in ("newest", "oldest"):
        raise ValueError("order must be 'newest' or 'oldest'")
    return order == "newest"
