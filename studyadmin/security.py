from flask_talisman import Talisman

def init_security(app):
    """
    Production/staging security headers with a conservative CSP.
    Keep inline JS out of templates to avoid 'unsafe-inline'.
    """
    img_src = ["'self'", "data:", "blob:"]
    # Partner logos are served from the bucket host when using S3
    public_base = app.config.get("S3_PUBLIC_BASE_URL") or app.config.get("S3_ENDPOINT_URL")
    if app.config.get("BLOB_BACKEND") == "s3":
        img_src.append(public_base or "https://*.amazonaws.com")

    csp = {
        "default-src": ["'self'"],
        "script-src":  ["'self'"],
        "style-src":   ["'self'", "'unsafe-inline'"],
        "img-src":     img_src,
        "font-src":    ["'self'", "data:"],
        "connect-src": ["'self'"],
        "frame-ancestors": ["'self'"],
        "base-uri":    ["'self'"],
        "form-action": ["'self'"],
    }

    Talisman(
        app,
        content_security_policy=csp,
        force_https=True,
        strict_transport_security=True,
        session_cookie_secure=True,
        frame_options="SAMEORIGIN",
        referrer_policy="strict-origin-when-cross-origin",
    )
