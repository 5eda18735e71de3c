"""Bot 回复文本."""

COMMANDS_HEADER = "These commands are supported:"

REGISTER_DONE = "[{created_at}] Registering your chat with the bot...Done."
REGISTER_FAILED = "[{error}] Error in registering new chat"
REGISTER_PROMPT = "This chat is not registered yet. Send /register to start using the bot."

SUBSCRIBE_DONE = "Feed is valid:\n{title}\n{link}"
SUBSCRIBE_USAGE = "Usage: /subscribe <url>"

FEED_LIST_HEADER = "Currently registered feeds:"
FEED_LIST_LINE = "{id} - {title}"
FEED_LIST_EMPTY = "You have no subscribed feeds. Use /subscribe <url> to add one."

UNSUBSCRIBE_DONE = "Deleted {count} feed(s)."
UNSUBSCRIBE_USAGE = "Usage: /unsubscribe <feed id>"
UNSUBSCRIBE_EXIT_BUTTON = "Exit menu"
MENU_CLOSED = "All done, thanks."

ACCOUNT_DELETED = "Your account has been deleted. Goodbye!"

ERROR = "Error: {error}"
ERROR_GENERIC = "Something went wrong, please try again later."

NOTIFICATION = "{feed_title}\n{title}\n{link}"
UNTITLED = "(untitled)"
