from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..common.http import current_caller, json_body, make_login_required
from ..container import Container


def register(api: Blueprint, container: Container) -> None:
    login_required = make_login_required(container.token_signer)
    auth = container.auth_service
    users = container.user_service

    # -------- Auth --------
    @api.route("/auth/signup", methods=["POST"], endpoint="auth_signup")
    def auth_signup():
        data = json_body()
        result = auth.signup(
            name=data.get("name", ""),
            email=data.get("email", ""),
            password=data.get("password", ""),
            role=data.get("role"),
            activation_code=data.get("activation_code") or data.get("activationCode"),
            invite_code=data.get("invite_code") or data.get("inviteCode"),
        )
        return jsonify(result.to_dict()), 201

    @api.route("/auth/login", methods=["POST"], endpoint="auth_login")
    def auth_login():
        data = json_body()
        result = auth.login(data.get("email", ""), data.get("password", ""))
        return jsonify(result.to_dict())

    @api.route("/auth/me", methods=["GET"], endpoint="auth_me")
    @login_required
    def auth_me():
        return jsonify(auth.me(current_caller()).to_public())

    # -------- Users --------
    @api.route("/users", methods=["GET"], endpoint="users_list")
    @login_required
    def users_list():
        found = users.list_users(
            current_caller(),
            role=request.args.get("role"),
            department=request.args.get("department"),
            class_name=request.args.get("class_name"),
            search=request.args.get("search"),
        )
        return jsonify([u.to_public() for u in found])

    @api.route("/users", methods=["POST"], endpoint="users_create")
    @login_required
    def users_create():
        data = json_body()
        created = users.create_account(
            current_caller(),
            name=data.get("name", ""),
            email=data.get("email", ""),
            role=data.get("role", ""),
            password=data.get("password"),
            uid=data.get("uid"),
            id_number=data.get("id_number"),
            department=data.get("department"),
            class_name=data.get("class_name"),
        )
        return jsonify(created.to_public()), 201

    @api.route("/users/<user_id>", methods=["PUT"], endpoint="users_update")
    @login_required
    def users_update(user_id: str):
        updated = users.update_user(current_caller(), user_id, json_body())
        return jsonify(updated.to_public())

    @api.route("/users/<user_id>", methods=["DELETE"], endpoint="users_delete")
    @login_required
    def users_delete(user_id: str):
        users.delete_user(current_caller(), user_id)
        return jsonify({"ok": True, "message": "User deleted"})

    @api.route("/users/toggle-status/<user_id>", methods=["POST"], endpoint="users_toggle_status")
    @login_required
    def users_toggle_status(user_id: str):
        return jsonify(users.toggle_status(current_caller(), user_id).to_public())

    @api.route("/users/promote/<user_id>", methods=["POST"], endpoint="users_promote")
    @login_required
    def users_promote(user_id: str):
        return jsonify(users.promote(current_caller(), user_id).to_public())

    @api.route("/users/demote/<user_id>", methods=["POST"], endpoint="users_demote")
    @login_required
    def users_demote(user_id: str):
        return jsonify(users.demote(current_caller(), user_id).to_public())

    @api.route("/users/change-password/<user_id>", methods=["POST"], endpoint="users_change_password")
    @login_required
    def users_change_password(user_id: str):
        data = json_body()
        users.change_password(current_caller(), user_id, data.get("new_password") or data.get("password"))
        return jsonify({"ok": True, "message": "Password updated"})

    @api.route("/users/map-uid/<user_id>", methods=["POST"], endpoint="users_map_uid")
    @login_required
    def users_map_uid(user_id: str):
        return jsonify(users.map_uid(current_caller(), user_id, json_body().get("uid")).to_public())
