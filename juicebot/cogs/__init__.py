EXTENSIONS = (
    'juicebot.cogs.ping',
    'juicebot.cogs.dog',
    'juicebot.cogs.callout',
    'juicebot.cogs.namehistory',
)

SERVERS_EXTENSION = 'juicebot.cogs.servers'
