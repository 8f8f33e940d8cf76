"""HTTP interface: dependencies, routers and error mapping."""
