from flask_wtf import FlaskForm
from wtforms import (
    StringField,
    TextAreaField,
    SelectField,
    SubmitField
)
from wtforms.validators import Length

from app.transfers.workflow import format_quantity


def optional_int(value):
    """Coerce a select value to int, treating blanks as no selection."""
    if value in (None, '', 'None'):
        return None
    return int(value)


class LotStepForm(FlaskForm):
    """
    Step 1: which lot to take stock from and how much.
    Business rules are enforced by the workflow, the form only collects input.
    """
    lot_id = SelectField('Lot', coerce=optional_int, validate_choice=False)
    quantity = StringField('Quantity to Transfer')
    next = SubmitField('Next')

    def set_lots(self, lots):
        self.lot_id.choices = [(None, '--- select a lot ---')] + [
            (lot.id, f"Lot {lot.lot_number} - {format_quantity(lot.quantity)} "
                     f"at {lot.location_name}")
            for lot in lots
        ]


class DetailsStepForm(FlaskForm):
    """
    Step 2: destination and notes.
    """
    search = StringField('Search locations')
    destination_location_id = SelectField('Destination Location',
                                          coerce=optional_int, validate_choice=False)
    notes = TextAreaField('Notes', validators=[Length(max=1000)])
    back = SubmitField('Back')
    find = SubmitField('Search')
    next = SubmitField('Next')

    def set_destinations(self, locations):
        if not locations:
            self.destination_location_id.choices = [(None, '--- no other locations ---')]
            return
        self.destination_location_id.choices = [(None, '--- select destination ---')] + [
            (loc.id, f"{loc.name} ({loc.type})") for loc in locations
        ]


class ConfirmStepForm(FlaskForm):
    """
    Step 3: review and submit.
    """
    back = SubmitField('Back')
    submit = SubmitField('Confirm Transfer')
