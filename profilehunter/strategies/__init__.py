"""Resolution layers. Each strategy maps an email to a Hit or a Miss."""
