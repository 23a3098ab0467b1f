"""
Permissions and User Functions Configuration
This config defines every permission of the portal, the user functions (fixed
permission bundles assigned per militar) and the menu entries each permission unlocks.
Used by the access dependencies, the /auth/me payload and the user-function sync script.
"""
from enum import Enum
from typing import Dict, Iterable, List, Set


class Permission(str, Enum):
    # Visualização
    VIEW_DASHBOARD = "view_dashboard"
    VIEW_MISSIONS = "view_missions"
    VIEW_PERSONNEL = "view_personnel"
    VIEW_MATERIAL = "view_material"
    VIEW_ACCESS_CONTROL = "view_access_control"

    # Missões
    MANAGE_MISSIONS = "manage_missions"
    REQUEST_MISSION = "request_mission"
    VIEW_ALL_MISSIONS = "view_all_missions"

    # Pessoal
    MANAGE_PERSONNEL = "manage_personnel"
    VIEW_DAILY_ATTENDANCE = "view_daily_attendance"
    SIGN_DAILY_ATTENDANCE = "sign_daily_attendance"

    # Material
    MANAGE_MATERIAL = "manage_material"
    REQUEST_MATERIAL = "request_material"
    VIEW_MATERIAL_PANEL = "view_material_panel"

    # Controle de Acesso
    MANAGE_ACCESS_CONTROL = "manage_access_control"

    # Admin
    MANAGE_USERS = "manage_users"
    MANAGE_PERMISSIONS = "manage_permissions"


ALL_PERMISSIONS: List[str] = [p.value for p in Permission]

PERMISSION_DESCRIPTIONS = {
    Permission.VIEW_DASHBOARD: "Painel geral",
    Permission.VIEW_MISSIONS: "Visualizar missões",
    Permission.VIEW_PERSONNEL: "Central de Pessoal e Mapa da Força",
    Permission.VIEW_MATERIAL: "Visualizar material",
    Permission.VIEW_ACCESS_CONTROL: "Visualizar controle de acesso e estacionamento",
    Permission.MANAGE_MISSIONS: "Validar e aprovar missões, emitir OMIS",
    Permission.REQUEST_MISSION: "Solicitar missões",
    Permission.VIEW_ALL_MISSIONS: "Central de Missões",
    Permission.MANAGE_PERSONNEL: "Editar dados e aprovar cadastros",
    Permission.VIEW_DAILY_ATTENDANCE: "Lançar chamada diária",
    Permission.SIGN_DAILY_ATTENDANCE: "Assinar e justificar chamada diária",
    Permission.MANAGE_MATERIAL: "Estoque e aprovação de cautelas",
    Permission.REQUEST_MATERIAL: "Solicitar cautelas",
    Permission.VIEW_MATERIAL_PANEL: "Painel de material",
    Permission.MANAGE_ACCESS_CONTROL: "Decidir solicitações de estacionamento",
    Permission.MANAGE_USERS: "Criar usuários e redefinir senhas",
    Permission.MANAGE_PERMISSIONS: "Atribuir funções e permissões",
}

P = Permission

USER_FUNCTIONS: Dict[str, Dict] = {
    "ADMIN_TOTAL": {
        "name": "ADMIN TOTAL",
        "description": "Acesso total ao sistema (CMDO-GSD-SP, CH-SOP, CH-SAP)",
        "permissions": ALL_PERMISSIONS,
    },
    "SOP_01": {
        "name": "SOP-01",
        "description": "Visualização Padrão + Central de Missões (Total)",
        "permissions": [P.VIEW_DASHBOARD, P.VIEW_MISSIONS, P.MANAGE_MISSIONS, P.REQUEST_MISSION,
                        P.VIEW_ALL_MISSIONS, P.VIEW_DAILY_ATTENDANCE, P.REQUEST_MATERIAL],
    },
    "SOP_03": {
        "name": "SOP-03",
        "description": "Visualização Padrão + Controle de Acesso (Total)",
        "permissions": [P.VIEW_DASHBOARD, P.VIEW_ACCESS_CONTROL, P.MANAGE_ACCESS_CONTROL,
                        P.REQUEST_MISSION, P.REQUEST_MATERIAL, P.VIEW_DAILY_ATTENDANCE],
    },
    "SAP_01": {
        "name": "SAP-01",
        "description": "Visualização Padrão + Central de Pessoal (Total)",
        "permissions": [P.VIEW_DASHBOARD, P.VIEW_PERSONNEL, P.MANAGE_PERSONNEL, P.VIEW_DAILY_ATTENDANCE,
                        P.SIGN_DAILY_ATTENDANCE, P.REQUEST_MISSION, P.REQUEST_MATERIAL],
    },
    "SAP_03": {
        "name": "SAP-03",
        "description": "Visualização Padrão + Painel de Material (Total)",
        "permissions": [P.VIEW_DASHBOARD, P.VIEW_MATERIAL, P.MANAGE_MATERIAL, P.VIEW_MATERIAL_PANEL,
                        P.REQUEST_MISSION, P.REQUEST_MATERIAL, P.VIEW_DAILY_ATTENDANCE],
    },
    "SEC_CMDO": {
        "name": "SEC-CMDO",
        "description": "Central de Pessoal, Meu Plano, Central de Missões",
        "permissions": [P.VIEW_DASHBOARD, P.VIEW_PERSONNEL, P.MANAGE_PERSONNEL, P.VIEW_DAILY_ATTENDANCE,
                        P.REQUEST_MISSION, P.VIEW_ALL_MISSIONS, P.REQUEST_MATERIAL],
    },
    "PADRAO": {
        "name": "PADRÃO",
        "description": "Meu Plano, Missões (Solicitar/Minhas), Material (Cautelas/Solicitar), Chamada Diária",
        "permissions": [P.VIEW_DASHBOARD, P.REQUEST_MISSION, P.REQUEST_MATERIAL, P.VIEW_DAILY_ATTENDANCE],
    },
}

DEFAULT_FUNCTION = "PADRAO"
ADMIN_FUNCTION = "ADMIN_TOTAL"

# Menu entries in display order; an entry is shown when the user holds any of its permissions
MENU_ENTRIES = [
    {"id": "home", "label": "Painel Geral", "permissions": [P.VIEW_DASHBOARD]},
    {"id": "my-plan", "label": "Meu Plano", "permissions": [P.REQUEST_MISSION, P.REQUEST_MATERIAL]},
    {"id": "mission-request", "label": "Nova Missão", "permissions": [P.REQUEST_MISSION]},
    {"id": "mission-center", "label": "Central de Missões", "permissions": [P.VIEW_ALL_MISSIONS, P.MANAGE_MISSIONS]},
    {"id": "mission-orders", "label": "Ordens de Missão", "permissions": [P.MANAGE_MISSIONS]},
    {"id": "material-caution", "label": "Cautela de Material", "permissions": [P.REQUEST_MATERIAL]},
    {"id": "material-panel", "label": "Painel de Material", "permissions": [P.MANAGE_MATERIAL, P.VIEW_MATERIAL_PANEL]},
    {"id": "daily-attendance", "label": "Chamada Diária", "permissions": [P.VIEW_DAILY_ATTENDANCE]},
    {"id": "force-map", "label": "Mapa da Força", "permissions": [P.VIEW_PERSONNEL]},
    {"id": "personnel", "label": "Central de Pessoal", "permissions": [P.VIEW_PERSONNEL, P.MANAGE_PERSONNEL]},
    {"id": "parking", "label": "Estacionamento", "permissions": [P.VIEW_ACCESS_CONTROL]},
    {"id": "permissions", "label": "Gerir Permissões", "permissions": [P.MANAGE_PERMISSIONS, P.MANAGE_USERS]},
    {"id": "settings", "label": "Minhas Configurações", "permissions": []},
]


def function_permissions(function_id: str) -> List[str]:
    """Permissions granted by a user function; unknown functions grant nothing."""
    func = USER_FUNCTIONS.get(function_id)
    if not func:
        return []
    return [p.value if isinstance(p, Permission) else p for p in func["permissions"]]


def unknown_permissions(names: Iterable[str]) -> List[str]:
    known = set(ALL_PERMISSIONS)
    return [n for n in names if n not in known]


def menu_for(permissions: Iterable[str]) -> List[Dict[str, str]]:
    granted: Set[str] = set(permissions)
    menu = []
    for entry in MENU_ENTRIES:
        required = [p.value for p in entry["permissions"]]
        if not required or granted.intersection(required):
            menu.append({"id": entry["id"], "label": entry["label"]})
    return menu


# Generate permission matrix
def get_permission_matrix():
    """
    Returns a dictionary with all permissions and the user functions
    Format: {
        "permissions": [{"name": "view_dashboard", "description": "..."}, ...],
        "functions": [
            {"id": "SOP_01", "name": "SOP-01", "description": "...", "permissions": [...]},
            ...
        ]
    }
    """
    permissions = [
        {"name": p.value, "description": PERMISSION_DESCRIPTIONS.get(p, p.value)}
        for p in Permission
    ]
    functions = []
    for function_id, func in USER_FUNCTIONS.items():
        functions.append({
            "id": function_id,
            "name": func["name"],
            "description": func["description"],
            "permissions": sorted(function_permissions(function_id)),
        })
    return {
        "permissions": permissions,
        "functions": functions
    }

