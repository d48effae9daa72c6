# Overview: Flask extension instances for database, migrations and the background scheduler.

from apscheduler.schedulers.background import BackgroundScheduler
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()

# Configured and started by coursepay.jobs.scheduler.init_scheduler
scheduler = BackgroundScheduler()
