"""DynamoDB access for the MemeHub single-table layout.

Repositories import `get_main_table` from `.table`; everything else here
(client config, retries, the Decimal codec, cursor tokens, typed errors)
sits behind it.
"""
