from app.database.models.user_model import User
from app.database.models.application_model import Application, FileReference, GeneratedCertificate
from app.database.models.form_data_models import FORM_DATA_MODELS
from app.database.models.notification_model import Notification
from app.database.models.payment_model import Payment

DOCUMENT_MODELS = [User, Application, Notification, Payment, *FORM_DATA_MODELS]
