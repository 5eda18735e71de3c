"""统一的错误类型.

存储层、抓取层和发送层都把各自库的异常收敛成这里的类型，
命令路由和轮询调度只需要处理 FeedPagerError。
"""


class FeedPagerError(Exception):
    """所有业务错误的基类."""


class NetworkError(FeedPagerError):
    """抓取 Feed 时的网络错误（超时、连接失败、HTTP 错误码）."""


class DecodeError(FeedPagerError):
    """无法解析为 RSS/Atom 文档."""


class ValidationError(FeedPagerError):
    """文档能解析，但结构校验不通过."""


class DeliveryError(FeedPagerError):
    """消息发送失败."""


class DuplicateChat(FeedPagerError):
    """Chat 已存在."""


class NotFound(FeedPagerError):
    """记录不存在."""


class StorageError(FeedPagerError):
    """数据库异常."""
