# mpki/models/__init__.py
#
# Import models from their modules (mpki.models.app, mpki.models.key, ...);
# App pulls in the service layer, which itself depends on the plain models.
