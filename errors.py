class TrackerError(Exception):
    """Basisklasse aller fachlichen Fehler. Die Nachricht geht direkt an den Benutzer."""

    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(TrackerError):
    """Pflichtfeld (Datum, Start, Ende) fehlt."""


class InvalidInput(TrackerError):
    """Wert vorhanden, aber nicht interpretierbar (z.B. '25:00' als Uhrzeit)."""


class NotFoundError(TrackerError):
    status_code = 404


class InvalidBackup(TrackerError):
    pass
