from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, BooleanField, SubmitField
from wtforms.validators import DataRequired, Length


class LoginForm(FlaskForm):
    """Sign-in form; ``login`` accepts either the username or the email."""
    login = StringField(
        'Username or Email',
        validators=[DataRequired(message='Username or email is required'), Length(max=120)]
    )
    password = PasswordField(
        'Password',
        validators=[DataRequired(message='Password is required')]
    )
    remember_me = BooleanField('Keep me signed in')
    submit = SubmitField('Sign In')
