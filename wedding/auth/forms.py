from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length, Optional

from wedding.forms import JSONForm, one_of
from wedding.models import USER_ROLES


class RegistrationForm(JSONForm):
    email = StringField('Email', validators=[DataRequired(), Email()])
    password = PasswordField('Password', validators=[DataRequired(), Length(min=8)])
    first_name = StringField('First name', validators=[Optional(), Length(max=150)])
    last_name = StringField('Last name', validators=[Optional(), Length(max=150)])
    role = StringField('Role', validators=[Optional(), one_of(USER_ROLES)])


class LoginForm(JSONForm):
    email = StringField('Email', validators=[DataRequired(), Email()])
    password = PasswordField('Password', validators=[DataRequired()])
