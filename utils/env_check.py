"""Configuration diagnostics. Reports presence of settings, never their values."""


def _is_set(value) -> bool:
    if isinstance(value, str):
        return len(value.strip()) > 0
    return value is not None


def config_status(config) -> dict:
    errors = []
    warnings = []
    services = []

    relay_ok = _is_set(config.get("WEB3FORMS_API_KEY"))
    if relay_ok:
        services.append("web3forms")
    else:
        errors.append("WEB3FORMS_API_KEY is missing - required for form submissions")

    smtp_ok = _is_set(config.get("SMTP_HOST")) and _is_set(config.get("SMTP_FROM_EMAIL"))
    if smtp_ok:
        services.append("smtp")
    else:
        warnings.append("No email service configured - OTP and confirmation emails will fail")

    # Login needs both halves of the credentials
    if _is_set(config.get("SMTP_USERNAME")) != _is_set(config.get("SMTP_PASSWORD")):
        warnings.append(
            "SMTP is partially configured - set both SMTP_USERNAME and SMTP_PASSWORD, or neither"
        )

    if _is_set(config.get("FORMSPREE_URL")):
        services.append("formspree")

    production = config.get("APP_ENV") == "production"
    if production and not _is_set(config.get("OTP_SIGNING_SECRET")):
        errors.append("OTP_SIGNING_SECRET is missing - required in production")
    elif not _is_set(config.get("OTP_SIGNING_SECRET")):
        warnings.append("OTP_SIGNING_SECRET not set - using the development fallback")

    return {
        "isValid": len(errors) == 0,
        "environment": config.get("APP_ENV"),
        "configuredServices": services,
        "errors": errors,
        "warnings": warnings,
    }
