from flask import Blueprint

main_bp = Blueprint('main', __name__)
study_bp = Blueprint('study', __name__)
habits_bp = Blueprint('habits', __name__)
tasks_bp = Blueprint('tasks', __name__)
settings_bp = Blueprint('settings', __name__)
leaderboards_bp = Blueprint('leaderboards', __name__)

from . import main, study, habits, tasks, settings, leaderboards

def register_blueprints(app):
    app.register_blueprint(main_bp)
    app.register_blueprint(study_bp, url_prefix='/sessions')
    app.register_blueprint(habits_bp, url_prefix='/habits')
    app.register_blueprint(tasks_bp, url_prefix='/tasks')
    app.register_blueprint(settings_bp, url_prefix='/settings')
    app.register_blueprint(leaderboards_bp)
