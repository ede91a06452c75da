"""Forms for the group blueprint."""

from wtforms import IntegerField, SelectMultipleField, StringField
from wtforms.validators import DataRequired, NumberRange, Optional

from arenapulse.core.forms import ApiForm


class GroupForm(ApiForm):
    """Form for creating a group by hand."""

    name = StringField("Group Name", validators=[Optional()])
    # Member ids are free-form; the service checks them against registrations
    member_ids = SelectMultipleField("Members", choices=[], validate_choice=False)


class RenameGroupForm(ApiForm):
    """Form for renaming a group."""

    name = StringField("Group Name", validators=[DataRequired()])


class AutoGroupForm(ApiForm):
    """Form for auto-grouping participants."""

    size = IntegerField("Group size", validators=[Optional(), NumberRange(min=1)])


class MemberForm(ApiForm):
    """Form naming a single member."""

    user_id = StringField("User", validators=[DataRequired()])


class MoveMemberForm(ApiForm):
    """Form for moving a member between groups."""

    user_id = StringField("User", validators=[DataRequired()])
    from_group_id = StringField("From group", validators=[DataRequired()])
    to_group_id = StringField("To group", validators=[DataRequired()])
