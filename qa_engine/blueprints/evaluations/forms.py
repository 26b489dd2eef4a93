from flask_wtf import FlaskForm
from wtforms import BooleanField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional


class ModerationForm(FlaskForm):
    """Scalar fields of a moderation submission; ``parameters`` is read from the JSON body."""

    class Meta:
        csrf = False

    additionalComments = TextAreaField("additionalComments", validators=[Optional(), Length(max=10000)])
    publish = BooleanField("publish")


class AgentCommentForm(FlaskForm):
    class Meta:
        csrf = False

    comment = TextAreaField("comment", validators=[DataRequired(), Length(max=5000)])
