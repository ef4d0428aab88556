"""cmdtrader engine layer: command parsing, order sizing and exchange dispatch.

Modules
-------
primitives
    Pure types and text parsers.
    - ``Quantity``, ``Balance``, ``Ticker``, ``OrderInfo``, ``Position``,
      ``OrderSizeResult``, ``PlacedOrder``
    - ``parse_quantity``, ``parse_percentage``, ``time_to_seconds``, ``split_symbol``
    - decimal-exact ``round_down`` / ``round_up`` / ``round_near``

commandlang
    ``exchange(SYMBOL) { action(args); ... }`` message parsing.
    - ``command_blocks``, ``parse_actions``, ``parse_arguments``, ``assign_params``

easing, scaled
    Price curves and ladder generators (``ease``, ``scaled_amounts``, ``scaled_prices``).

sizing
    Wallet based order sizing (``calc_order_size``, ``scaled_order_size``).

exchange
    ``Exchange`` / ``ContractsExchange``: per-instance command table, ticker
    cache, session and algo registries, position/price/size resolution.

registry
    ``SessionRegistry`` and ``AlgoRegistry``.

clock
    ``AppClock`` (injectable time source) and ``PollBackoff``.

manager
    ``ExchangeManager``: message -> blocks -> reference-counted exchanges.

notifier
    ``Notifier`` with ``LogChannel`` / ``WebhookChannel``.

protocols
    ``ExchangeAPI``, ``ContractsAPI``, ``NotificationChannel`` adapter boundaries.
"""
