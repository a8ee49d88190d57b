"""
PurrfectCare Backend - Reminder Email Composer

Purpose: Render the subject and HTML body of a reminder email. Pure function
of its inputs (the footer year comes from ``now``), no I/O.

Templates:
    - vaccination_due: vaccine, due date, vet and clinic, overdue banner
    - medication: medication, dosage, scheduled time, notes
    - everything else: title, due date, time, description
"""

from datetime import datetime
from html import escape
from typing import List, NamedTuple, Optional, Tuple

from purrfectcare.models.pet import Owner, Pet
from purrfectcare.models.reminder import Reminder, ReminderType
from purrfectcare.services.reminder_state import is_overdue


class RenderedEmail(NamedTuple):
    subject: str
    body: str


# Header gradients per template
PURPLE = ("#667eea", "#764ba2")
GREEN = ("#11998e", "#38ef7d")


def _format_due_date(reminder: Reminder) -> str:
    # e.g. "Monday, January 1, 2024"
    due = reminder.due_date
    return f"{due.strftime('%A, %B')} {due.day}, {due.year}"


def _rows(rows: List[Tuple[str, Optional[str]]]) -> str:
    """Render label/value table rows, skipping empty values"""
    html = []
    for label, value in rows:
        if not value:
            continue
        html.append(
            f'<tr>'
            f'<td style="padding: 8px 0; color: #666;">{escape(label)}:</td>'
            f'<td style="padding: 8px 0; color: #333; font-weight: 500;">{escape(value)}</td>'
            f'</tr>'
        )
    return "\n".join(html)


class NotificationComposer:
    """
    Picks a template by reminder type and renders it
    """

    def __init__(self, app_url: str, app_name: str = "PurrfectCare"):
        self.app_url = app_url.rstrip("/")
        self.app_name = app_name

    def render(
        self,
        reminder: Reminder,
        pet: Optional[Pet],
        owner: Optional[Owner],
        now: datetime
    ) -> RenderedEmail:
        pet_name = pet.name if pet and pet.name else "your pet"
        owner_name = owner.name if owner and owner.name else "there"

        if reminder.reminder_type == ReminderType.VACCINATION_DUE:
            return self._vaccination(reminder, pet_name, owner_name, now)
        if reminder.reminder_type == ReminderType.MEDICATION:
            return self._medication(reminder, pet_name, owner_name, now)
        return self._default(reminder, pet_name, owner_name, now)

    # =========================================================================
    # TEMPLATES
    # =========================================================================

    def _vaccination(self, reminder: Reminder, pet_name: str, owner_name: str, now: datetime) -> RenderedEmail:
        details = reminder.details
        vaccine = details.vaccine_name or "Vaccination"
        timing = "overdue" if is_overdue(reminder, now) else "coming up"
        rows = _rows([
            ("Pet Name", pet_name),
            ("Vaccine", details.vaccine_name or "Not specified"),
            ("Due Date", _format_due_date(reminder)),
            ("Veterinarian", details.vet_name),
            ("Clinic", details.clinic),
        ])

        content = f"""
            <div style="background: #fff3cd; border-left: 4px solid #ffc107; padding: 15px; margin: 20px 0; border-radius: 4px;">
              <p style="margin: 0; color: #856404; font-weight: 500;">
                <strong>Important:</strong> {escape(pet_name)}'s vaccination is {timing}!
              </p>
            </div>
            <div style="background: #f8f9fa; padding: 20px; border-radius: 8px; margin: 20px 0;">
              <h3 style="color: {PURPLE[0]}; margin-top: 0;">Vaccination Details</h3>
              <table style="width: 100%; border-collapse: collapse;">
                {rows}
              </table>
            </div>
            <p style="color: #666; line-height: 1.6;">
              Please schedule an appointment with your veterinarian to ensure {escape(pet_name)} stays healthy and protected.
            </p>"""

        return RenderedEmail(
            subject=f"Vaccination Reminder: {vaccine} for {pet_name}",
            body=self._layout(
                heading="Vaccination Reminder",
                colors=PURPLE,
                owner_name=owner_name,
                content=content,
                button="View in Dashboard",
                footer="because you have email notifications enabled for vaccination reminders",
                now=now,
            ),
        )

    def _medication(self, reminder: Reminder, pet_name: str, owner_name: str, now: datetime) -> RenderedEmail:
        details = reminder.details
        medication = details.medication_name or "Medication"
        rows = _rows([
            ("Pet Name", pet_name),
            ("Medication", details.medication_name or "Not specified"),
            ("Dosage", details.dosage),
            ("Scheduled Time", reminder.due_time),
        ])
        notes = self._note("Notes", reminder.description)

        content = f"""
            <div style="background: #d4edda; border-left: 4px solid #28a745; padding: 15px; margin: 20px 0; border-radius: 4px;">
              <p style="margin: 0; color: #155724; font-weight: 500;">
                <strong>Reminder:</strong> It's time for {escape(pet_name)}'s medication!
              </p>
            </div>
            <div style="background: #f8f9fa; padding: 20px; border-radius: 8px; margin: 20px 0;">
              <h3 style="color: {GREEN[0]}; margin-top: 0;">Medication Details</h3>
              <table style="width: 100%; border-collapse: collapse;">
                {rows}
              </table>
            </div>{notes}"""

        return RenderedEmail(
            subject=f"Medication Reminder: {medication} for {pet_name}",
            body=self._layout(
                heading="Medication Reminder",
                colors=GREEN,
                owner_name=owner_name,
                content=content,
                button="Mark as Complete",
                footer="because you have email notifications enabled for medication reminders",
                now=now,
            ),
        )

    def _default(self, reminder: Reminder, pet_name: str, owner_name: str, now: datetime) -> RenderedEmail:
        rows = _rows([
            ("Pet Name", pet_name),
            ("Due Date", _format_due_date(reminder)),
            ("Time", reminder.due_time),
        ])
        notes = self._note("Details", reminder.description)
        content = f"""
            <div style="background: #e7f3ff; border-left: 4px solid #0066cc; padding: 15px; margin: 20px 0; border-radius: 4px;">
              <p style="margin: 0; color: #004085; font-weight: 500;">
                <strong>Reminder:</strong> {escape(reminder.title)}
              </p>
            </div>
            <div style="background: #f8f9fa; padding: 20px; border-radius: 8px; margin: 20px 0;">
              <table style="width: 100%; border-collapse: collapse;">
                {rows}
              </table>
            </div>{notes}"""

        return RenderedEmail(
            subject=f"Reminder: {reminder.title} for {pet_name}",
            body=self._layout(
                heading="Pet Care Reminder",
                colors=PURPLE,
                owner_name=owner_name,
                content=content,
                button="View in Dashboard",
                footer="for your pet care reminders",
                now=now,
            ),
        )

    # =========================================================================
    # LAYOUT
    # =========================================================================

    @staticmethod
    def _note(label: str, text: Optional[str]) -> str:
        if not text:
            return ""
        return f"""
            <p style="color: #666; line-height: 1.6;">
              <strong>{label}:</strong> {escape(text)}
            </p>"""

    def _layout(
        self,
        heading: str,
        colors: Tuple[str, str],
        owner_name: str,
        content: str,
        button: str,
        footer: str,
        now: datetime
    ) -> str:
        gradient = f"linear-gradient(135deg, {colors[0]} 0%, {colors[1]} 100%)"
        app_name = escape(self.app_name)

        return f"""
        <div style="font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; background-color: #f9f9f9;">
          <div style="background: {gradient}; padding: 30px; border-radius: 10px 10px 0 0; text-align: center;">
            <h1 style="color: white; margin: 0; font-size: 24px;">{app_name}</h1>
            <p style="color: rgba(255,255,255,0.9); margin: 10px 0 0 0;">{heading}</p>
          </div>
          <div style="background: white; padding: 30px; border-radius: 0 0 10px 10px; box-shadow: 0 2px 10px rgba(0,0,0,0.1);">
            <h2 style="color: #333; margin-top: 0;">Hi {escape(owner_name)}!</h2>
            {content}
            <div style="text-align: center; margin-top: 30px;">
              <a href="{escape(self.app_url)}/dashboard" style="background: {gradient}; color: white; padding: 12px 30px; text-decoration: none; border-radius: 25px; font-weight: 500; display: inline-block;">
                {button}
              </a>
            </div>
          </div>
          <div style="text-align: center; padding: 20px; color: #999; font-size: 12px;">
            <p>This email was sent by {app_name} {footer}.</p>
            <p>&copy; {now.year} {app_name}. All rights reserved.</p>
          </div>
        </div>
        """
