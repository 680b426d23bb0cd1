class DiagramError(Exception):
    pass


class ConfigurationError(DiagramError):
    pass


class NodeNotFoundError(DiagramError, KeyError):
    pass
