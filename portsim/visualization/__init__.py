"""Visualization and reporting system."""

from .charts import ChartGenerator, save_report

__all__ = ["ChartGenerator", "save_report"]
