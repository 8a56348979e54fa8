from flask import current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_user, logout_user, login_required
from app.auth import bp
from app.auth.forms import LoginForm
from app.activity import log_activity
from app.models import User
from app.extensions import db, limiter


@bp.route('/login', methods=['GET', 'POST'])
@limiter.limit("5 per minute")  # Protect against brute force
def login():
    if current_user.is_authenticated:
        return redirect(url_for('main.dashboard'))

    form = LoginForm()
    if form.validate_on_submit():
        identifier = form.login.data.strip()
        user = User.query.filter(
            db.or_(User.username == identifier, User.email == identifier.lower())
        ).first()
        if user is None or not user.check_password(form.password.data):
            flash('Invalid username or password', 'error')
            return render_template('auth/login.html', form=form, title='Sign In')
        if not user.is_active:
            flash('This account has been deactivated.', 'error')
            return render_template('auth/login.html', form=form, title='Sign In')

        login_user(user, remember=form.remember_me.data)
        log_activity(user, 'LOGIN', 'AUTH', 'User logged in successfully')
        user.update_last_login()
        current_app.logger.info(f'User {user.username} logged in')

        next_page = request.args.get('next')
        if not next_page or not next_page.startswith('/'):
            next_page = url_for('main.dashboard')
        return redirect(next_page)

    return render_template('auth/login.html', form=form, title='Sign In')


@bp.route('/logout')
@login_required
def logout():
    log_activity(current_user, 'LOGOUT', 'AUTH', 'User logged out')
    db.session.commit()
    logout_user()
    return redirect(url_for('main.index'))
