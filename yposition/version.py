"""版本信息"""

__version__ = "0.1.0"
__author__ = "yposition contributors"
__description__ = "SQLAlchemy 模型的连续位置维护库"
