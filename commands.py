import os
import click
from datetime import datetime, timedelta
from werkzeug.security import generate_password_hash
from models import db, User, Profile, Subject, StudySession, Habit, HabitLog, Task
from services.leaderboard_service import create_leaderboard

def register_commands(app):

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop all tables first.')
    def init_db(drop):
        """Create the database tables."""
        if drop:
            click.echo("Dropping all tables...")
            db.drop_all()
        click.echo("Creating all tables...")
        db.create_all()

        # Keep flask-migrate in step when a migrations folder exists
        if os.path.isdir(os.path.join(app.root_path, 'migrations')):
            from flask_migrate import stamp
            stamp()
        click.echo("Database initialized.")

    @app.cli.command('seed-demo')
    @click.option('--email', default='demo@studyflow.app', show_default=True)
    @click.option('--password', default='password123', show_default=True)
    def seed_demo(email, password):
        """Create a demo account with a week of study data."""
        user = User.query.filter_by(email=email).first()
        if user:
            click.echo(f"User '{email}' already exists.")
            return

        user = User(email=email, password_hash=generate_password_hash(password, method='scrypt'))
        db.session.add(user)
        db.session.flush()
        db.session.add(Profile(user_id=user.id, email=email, first_name='Demo', last_name='Student'))

        maths = Subject(user_id=user.id, name='Mathematics', color='#3b82f6')
        physics = Subject(user_id=user.id, name='Physics', color='#8b5cf6')
        db.session.add_all([maths, physics])
        db.session.flush()

        reading = Habit(user_id=user.id, name='Read 20 pages')
        db.session.add(reading)
        db.session.flush()

        now = datetime.now().replace(second=0, microsecond=0)
        for i in range(7):
            start = now - timedelta(days=i, hours=2)
            subject = maths if i % 2 == 0 else physics
            minutes = 45 + 5 * i
            db.session.add(StudySession(user_id=user.id, subject_id=subject.id, start_time=start,
                                        end_time=start + timedelta(minutes=minutes), duration=minutes * 60))
            db.session.add(HabitLog(habit_id=reading.id, date=start.date()))

        db.session.add(Task(user_id=user.id, title='Problem set 3', subject_id=maths.id,
                            due_date=now.date() + timedelta(days=2)))
        db.session.commit()

        create_leaderboard('Study group', 'study_time', user)
        click.echo(f"Demo account '{email}' created.")
