"""promptdeck - 问候接口 + PostgreSQL 数据访问层"""

__version__ = "0.1.0"
