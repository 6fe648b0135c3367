from app.models.patient import Patient
from app.models.doctor import Doctor
from app.models.admin import Admin
from app.models.appointment import Appointment
from app.models.bill import Bill

__all__ = ["Patient", "Doctor", "Admin", "Appointment", "Bill"]
