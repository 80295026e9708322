from typing_extensions import Annotated
from pydantic import AfterValidator
from daily.features.users import validators

ValidatedUsername = Annotated[str, AfterValidator(validators.validate_username)]
ValidatedEmail = Annotated[str, AfterValidator(validators.validate_email)]
ValidatedBio = Annotated[str, AfterValidator(validators.validate_bio)]
ValidatedPassword = Annotated[str, AfterValidator(validators.validate_password)]
