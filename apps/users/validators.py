"""
Gating rules for the multi-step tradesperson registration wizard.

Steps: 1 identity/credentials, 2 skills, 3 location, 4 certification,
5 insurance, 6 review. Only steps 1-3 are gated; the remaining steps rely on
field-level required markers.
"""
import re

UK_POSTCODE_PATTERN = re.compile(r'^[A-Z]{1,2}\d[A-Z\d]? ?\d[A-Z]{2}$', re.IGNORECASE)

FIRST_STEP = 1
LAST_STEP = 6
GATED_STEPS = (1, 2, 3)

CREDENTIAL_FIELDS = ('email', 'password', 'confirm_password', 'first_name', 'last_name', 'phone_number')
LOCATION_FIELDS = ('address', 'city', 'state', 'postal_code')
MIN_PASSWORD_LENGTH = 8


class RegistrationStepError(ValueError):
    def __init__(self, step, message):
        self.step = step
        self.message = message
        super().__init__(message)


def is_valid_uk_postcode(postcode):
    return bool(UK_POSTCODE_PATTERN.match((postcode or '').strip()))


def _text(value):
    """Form values as text; numbers are accepted, nested values count as blank."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ''


def validate_credentials(data):
    values = {field: _text(data.get(field)) for field in CREDENTIAL_FIELDS}
    if not all(value.strip() for value in values.values()):
        raise RegistrationStepError(1, "Please fill all required fields")
    if values['password'] != values['confirm_password']:
        raise RegistrationStepError(1, "Passwords do not match")
    if len(values['password']) < MIN_PASSWORD_LENGTH:
        raise RegistrationStepError(1, f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def validate_skills(data):
    skills = data.get('skills')
    if not isinstance(skills, (list, tuple)) or not any(_text(skill).strip() for skill in skills):
        raise RegistrationStepError(2, "Please select at least one skill")


def validate_location(data):
    location = data.get('location')
    if not isinstance(location, dict):
        location = {}
    values = {field: _text(location.get(field)) for field in LOCATION_FIELDS}
    if not all(value.strip() for value in values.values()):
        raise RegistrationStepError(3, "Please fill all location fields")
    if not is_valid_uk_postcode(values['postal_code']):
        raise RegistrationStepError(3, "Please provide a valid UK postal code")


STEP_VALIDATORS = {
    1: validate_credentials,
    2: validate_skills,
    3: validate_location,
}


def validate_step(step, data):
    """Raise RegistrationStepError if ``data`` may not leave ``step``."""
    if step < FIRST_STEP or step > LAST_STEP:
        raise RegistrationStepError(step, f"Registration step must be between {FIRST_STEP} and {LAST_STEP}")
    validator = STEP_VALIDATORS.get(step)
    if validator is not None:
        validator(data)


def validate_all_steps(data):
    for step in GATED_STEPS:
        validate_step(step, data)


class RegistrationWizard:
    """Tracks the current step and the error shown for it."""

    def __init__(self, step=FIRST_STEP):
        self.step = step
        self.error = ''

    def next_step(self, data):
        try:
            validate_step(self.step, data)
        except RegistrationStepError as e:
            self.error = e.message
            return False
        self.error = ''
        if self.step < LAST_STEP:
            self.step += 1
        return True

    def prev_step(self):
        self.error = ''
        if self.step > FIRST_STEP:
            self.step -= 1
        return self.step
