"""Forms for the room blueprint."""

from wtforms import StringField, TextAreaField
from wtforms.validators import DataRequired, Optional, URL

from arenapulse.core.forms import ApiForm

from .models import MessageType


class MessageForm(ApiForm):
    """Form for posting a message to a room."""

    content = TextAreaField("Message", validators=[Optional()])
    type = StringField("Type", default=MessageType.TEXT.value)
    image_url = StringField("Image URL", validators=[Optional(), URL()])


class EditMessageForm(ApiForm):
    """Form for editing a message in place."""

    content = TextAreaField("Message", validators=[DataRequired()])
