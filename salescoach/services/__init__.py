"""
services/ - Session aggregation and supporting services

Modules:
    session.py           - AssessmentSession, snapshots, baseline cloning
    score_writer.py      - Per-behavior sequenced persistence
    rubric_loader.py     - Rubric parsing, validation and cached provider
    report_generator.py  - Markdown / pandas / JSON export and benchmark rows
    cache.py             - Redis cache singleton
    redis_cache.py       - Pydantic-aware Redis wrapper
    snowflake.py         - Snowflake connection factory
"""
