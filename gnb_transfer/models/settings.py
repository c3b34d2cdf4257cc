import json

from gnb_transfer.extensions import db
from gnb_transfer.utils.dates import utcnow


class Settings(db.Model):
    __tablename__ = 'settings'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(100), unique=True, nullable=False, index=True)
    value = db.Column(db.Text)
    data_type = db.Column(db.String(20), default='string')  # string, int, float, bool, json
    description = db.Column(db.String(500))

    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    @staticmethod
    def decode(value, data_type):
        if value is None:
            return None
        if data_type == 'int':
            return int(value)
        elif data_type == 'float':
            return float(value)
        elif data_type == 'bool':
            return value.lower() in ('true', '1', 'yes')
        elif data_type == 'json':
            return json.loads(value)
        return value

    @staticmethod
    def get_value(key, default=None):
        setting = Settings.query.filter_by(key=key).first()
        if not setting:
            return default
        return Settings.decode(setting.value, setting.data_type)

    @staticmethod
    def get_prefixed(prefix):
        """Return {key: decoded value} for every setting whose key starts with prefix"""
        rows = Settings.query.filter(Settings.key.startswith(prefix)).order_by(Settings.key).all()
        return {row.key: Settings.decode(row.value, row.data_type) for row in rows}

    @staticmethod
    def set_value(key, value, data_type='string', description=None, commit=True):
        setting = Settings.query.filter_by(key=key).first()

        if data_type == 'json':
            value = json.dumps(value)
        elif data_type == 'bool':
            value = 'true' if value else 'false'
        else:
            value = str(value)

        if setting:
            setting.value = value
            setting.data_type = data_type
            if description:
                setting.description = description
        else:
            setting = Settings(
                key=key,
                value=value,
                data_type=data_type,
                description=description
            )
            db.session.add(setting)

        if commit:
            db.session.commit()
        return setting
