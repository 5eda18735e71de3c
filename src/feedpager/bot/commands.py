"""命令解析.

入站文本在边界处一次性解析为封闭的命令类型，之后按类型分发。
"""

from dataclasses import dataclass
from typing import ClassVar


class CommandParseError(ValueError):
    """命令关键字正确，但参数不合法."""

    def __init__(self, keyword: str) -> None:
        super().__init__(f"invalid arguments for {keyword}")
        self.keyword = keyword


@dataclass(frozen=True)
class Help:
    pass


@dataclass(frozen=True)
class Register:
    pass


@dataclass(frozen=True)
class Subscribe:
    url: str


@dataclass(frozen=True)
class ListFeeds:
    pass


@dataclass(frozen=True)
class Unsubscribe:
    # None 表示弹出选择菜单
    feed_id: int | None = None


@dataclass(frozen=True)
class DeleteAccount:
    pass


@dataclass(frozen=True)
class Exit:
    pass


Command = Help | Register | Subscribe | ListFeeds | Unsubscribe | DeleteAccount | Exit


@dataclass(frozen=True)
class CommandSpec:
    """命令关键字与帮助说明."""

    keyword: str
    description: str
    usage: str = ""


class CommandTable:
    """某个授权状态下可用的命令，用于生成帮助文本."""

    UNREGISTERED: ClassVar[list[CommandSpec]] = [
        CommandSpec("help", "display this text."),
        CommandSpec("register", "register this chat with the bot (alias: /start)."),
    ]

    REGISTERED: ClassVar[list[CommandSpec]] = [
        CommandSpec("help", "display this text."),
        CommandSpec("subscribe", "subscribe to this RSS feed.", "<url>"),
        CommandSpec("list", "list subscribed feeds."),
        CommandSpec("unsubscribe", "unsubscribe feed.", "[feed id]"),
        CommandSpec("deleteaccount", "delete my user account (alias: /delete)."),
    ]


# 内联键盘只会回传这两种数据
CALLBACK_KEYWORDS = ("unsubscribe", "exit")


def parse_command(text: str, bot_username: str | None = None) -> Command | None:
    """
    把用户输入的消息文本解析为命令.

    只有以 "/" 开头的消息才是命令。关键字大小写不敏感，可带 "@BotName" 后缀；
    给定 bot_username 时，后缀指向其他 bot 的命令不处理。

    Returns:
        识别出的命令；不是命令时返回 None

    Raises:
        CommandParseError: 关键字可识别但参数缺失或格式错误
    """
    text = text.strip()
    if not text.startswith("/"):
        return None

    parts = text[1:].split(maxsplit=1)
    if not parts:
        return None
    keyword, _, target = parts[0].partition("@")
    if target and bot_username and target.lower() != bot_username.lower():
        return None

    argument = parts[1] if len(parts) > 1 else ""
    return _build_command(keyword.lower(), argument.strip())


def parse_callback(data: str) -> Command | None:
    """解析内联键盘回调数据，格式为 "keyword" 或 "keyword:argument"."""
    keyword, _, argument = data.strip().partition(":")
    keyword = keyword.lower()
    if keyword not in CALLBACK_KEYWORDS:
        return None
    return _build_command(keyword, argument.strip())


def _build_command(keyword: str, argument: str) -> Command | None:
    if keyword == "help":
        return Help()
    if keyword in ("register", "start"):
        return Register()
    if keyword == "subscribe":
        if not argument:
            raise CommandParseError("subscribe")
        return Subscribe(url=argument.split()[0])
    if keyword == "list":
        return ListFeeds()
    if keyword == "unsubscribe":
        if not argument:
            return Unsubscribe()
        try:
            return Unsubscribe(feed_id=int(argument.split()[0]))
        except ValueError as e:
            raise CommandParseError("unsubscribe") from e
    if keyword in ("deleteaccount", "delete"):
        return DeleteAccount()
    if keyword == "exit":
        return Exit()
    return None



def format_help(specs: list[CommandSpec], header: str) -> str:
    """生成帮助文本."""
    lines = [header]
    for spec in specs:
        usage = f" {spec.usage}" if spec.usage else ""
        lines.append(f"/{spec.keyword}{usage} - {spec.description}")
    return "\n".join(lines)
