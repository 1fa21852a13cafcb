from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

class StoreEntry(db.Model):
    """
    Einfacher Key-Value-Speicher. Schichten und Einstellungen liegen jeweils
    als komplettes JSON-Dokument unter einem Schlüssel.
    """
    __tablename__ = 'store_entry'

    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Text, nullable=False)
