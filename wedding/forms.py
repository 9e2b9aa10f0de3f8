from flask_wtf import FlaskForm
from wtforms import DecimalField, IntegerField
from wtforms.validators import ValidationError

DATETIME_FORMATS = ['%Y-%m-%dT%H:%M:%S', '%Y-%m-%dT%H:%M', '%Y-%m-%d %H:%M:%S', '%Y-%m-%d']


class JSONForm(FlaskForm):
    """Form fed from a JSON or multipart request body.

    WTForms gives a default to every field, including the ones the client
    left out; ``provided()`` keeps only the fields that were actually sent.
    """

    def provided(self):
        return {
            name: field.data
            for name, field in self._fields.items()
            if name != 'csrf_token' and field.raw_data
        }


class MoneyField(DecimalField):
    """Decimal field that refuses JSON null, booleans and objects."""

    def process_formdata(self, valuelist):
        if valuelist and (valuelist[0] is None or isinstance(valuelist[0], (bool, dict, list))):
            self.data = None
            raise ValueError(self.gettext('Not a valid decimal value.'))
        super().process_formdata(valuelist)


class StrictIntegerField(IntegerField):
    """Integer field that refuses fractions and booleans instead of truncating them."""

    def process_formdata(self, valuelist):
        if not valuelist:
            return
        value = valuelist[0]
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            self.data = None
            raise ValueError(self.gettext('Not a valid integer value.'))
        super().process_formdata([value])


def positive(form, field):
    if field.data is None or field.data <= 0:
        raise ValidationError('Must be greater than zero.')


def one_of(choices):
    message = 'Must be one of: %s.' % ', '.join(choices)

    def _one_of(form, field):
        if field.data not in choices:
            raise ValidationError(message)
    return _one_of
