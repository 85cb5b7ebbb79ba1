from flask import current_app
from flask_mail import Mail, Message

mail = Mail()


def _display_name(account):
    return getattr(account, 'full_name', None) or getattr(account, 'owner_name', None) or 'Applicant'


def send_verification_notice(account, verified, reason=None):
    """
    Emails the applicant the result of an officer review.
    Delivery problems are logged; the review itself already committed.
    """
    if not account.email:
        return False

    name = _display_name(account)
    support = current_app.config.get('SUPPORT_EMAIL')

    if verified:
        subject = "MAO Abaca Portal | Account Verified"
        body = (f"Hello {name},\n\n"
                "Your account has been verified by the Municipal Agriculture Office. "
                "You can now log in to the portal.")
    else:
        subject = "MAO Abaca Portal | Application Update"
        body = (f"Hello {name},\n\n"
                f"Your account application was rejected. Reason: {reason}\n\n"
                f"Please contact {support} for assistance.")

    try:
        mail.send(Message(subject=subject, recipients=[account.email], body=body))
        return True
    except Exception as e:
        current_app.logger.error(f"Mail delivery failure for {account.email}: {e}")
        return False
