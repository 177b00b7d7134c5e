"""路由模块聚合导出。"""

from . import media, system

__all__ = [
	"media",
	"system",
]
