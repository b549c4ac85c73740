import os

import django

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "embedproject.test_settings")
django.setup()
