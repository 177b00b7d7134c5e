"""MediaScout：网页媒体发现与下载/转码代理服务"""

__version__ = "0.1.0"
