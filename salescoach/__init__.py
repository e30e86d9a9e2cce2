"""Sales coaching behavioral assessment: rubric scoring, session aggregation and export."""

__version__ = "1.0.0"
