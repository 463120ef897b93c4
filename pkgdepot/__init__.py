"""pkgdepot - 基于内容寻址存储的包管理核心"""

__version__ = "0.1.0"
