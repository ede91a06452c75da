"""Forms for the tournament blueprint."""

from wtforms import BooleanField, FloatField, IntegerField, StringField, TextAreaField
from wtforms.validators import DataRequired, NumberRange, Optional

from arenapulse.core.forms import ApiForm


class TournamentForm(ApiForm):
    """Form for creating/editing a tournament."""

    title = StringField("Title", validators=[DataRequired()])
    description = TextAreaField("Description", validators=[Optional()])
    game = StringField("Game", validators=[Optional()])
    banner_url = StringField("Banner URL", validators=[Optional()])
    # ISO-8601 strings, parsed by the service
    start_at = StringField("Start", validators=[Optional()])
    end_at = StringField("End", validators=[Optional()])
    capacity = IntegerField("Capacity", validators=[Optional()])
    price = FloatField("Entry Fee", validators=[Optional(), NumberRange(min=0)])
    rules = TextAreaField("Rules", validators=[Optional()])
    prizes = TextAreaField("Prizes", validators=[Optional()])
    is_active = BooleanField("Active", default=True)


class RegistrationForm(ApiForm):
    """Contact fields of a team registration. Players are validated by the service."""

    team_name = StringField("Team name", validators=[DataRequired()])
    phone = StringField("Phone number", validators=[DataRequired()])
    real_name = StringField("Real name", validators=[DataRequired()])
