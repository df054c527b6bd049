class InfrastructureError(Exception):
    """Base class for failures of a backing service (KV store, identity provider).

    These surface to HTTP clients as a generic 500; the message is only logged.
    """
