"""
UI Agent Server：远程 UI 自动化控制服务
"""
__version__ = "1.0.0"
