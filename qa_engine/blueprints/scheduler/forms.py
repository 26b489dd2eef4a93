from flask_wtf import FlaskForm
from wtforms import BooleanField, IntegerField, StringField
from wtforms.validators import Length, NumberRange, Optional


class ScheduleConfigForm(FlaskForm):
    class Meta:
        csrf = False

    enabled = BooleanField("enabled")
    cronExpression = StringField("cronExpression", validators=[Optional(), Length(max=120)])
    maxEvaluations = IntegerField("maxEvaluations", validators=[Optional(), NumberRange(min=1, max=10000)])
    evaluatorId = StringField("evaluatorId", validators=[Optional(), Length(max=64)])
    evaluatorName = StringField("evaluatorName", validators=[Optional(), Length(max=120)])


class RunForm(FlaskForm):
    class Meta:
        csrf = False

    maxEvaluations = IntegerField("maxEvaluations", validators=[Optional(), NumberRange(min=1, max=10000)])
