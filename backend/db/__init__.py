# Database utilities package
from .sql import (
    count_self_proposals,
    find_self_proposals,
    run_sql,
    run_sql_scalar,
)
from .engine import get_engine, dispose_engines
