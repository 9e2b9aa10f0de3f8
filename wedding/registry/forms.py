from wtforms import BooleanField, StringField, TextAreaField
from wtforms.validators import DataRequired, Email, Length, Optional

from wedding.forms import JSONForm, MoneyField, StrictIntegerField, one_of, positive
from wedding.models import PRIORITIES


class RegistryItemForm(JSONForm):
    event_id = StrictIntegerField('Event', validators=[DataRequired()])
    product_id = StrictIntegerField('Product', validators=[DataRequired()])
    target_amount = MoneyField('Target amount', places=2, validators=[positive])
    priority = StringField('Priority', validators=[Optional(), one_of(PRIORITIES)])
    is_public = BooleanField('Public')
    is_purchased = BooleanField('Purchased')


class RegistryItemUpdateForm(JSONForm):
    target_amount = MoneyField('Target amount', places=2, validators=[Optional(), positive])
    priority = StringField('Priority', validators=[Optional(), one_of(PRIORITIES)])
    is_public = BooleanField('Public')
    is_purchased = BooleanField('Purchased')


class ContributionForm(JSONForm):
    registry_item_id = StrictIntegerField('Registry item', validators=[DataRequired()])
    amount = MoneyField('Amount', places=2, validators=[positive])
    contributor_email = StringField('Email', validators=[DataRequired(), Email()])
    contributor_name = StringField('Name', validators=[Optional(), Length(max=150)])
    message = TextAreaField('Message', validators=[Optional(), Length(max=1000)])
    is_anonymous = BooleanField('Anonymous')
