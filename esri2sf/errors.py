class Esri2sfError(Exception):
    pass


class ConfigurationError(Esri2sfError):
    pass


class ProtocolError(Esri2sfError):
    pass


class TransportError(Esri2sfError):
    pass


class MalformedGeometryError(Esri2sfError):
    pass
