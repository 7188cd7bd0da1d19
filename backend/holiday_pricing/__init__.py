"""
酒店节假日/活动定价服务
"""
__version__ = "1.0.0"
