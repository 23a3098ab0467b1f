"""Domain vocabularies of the GSD-SP portal."""

# Ordered from most senior to most junior
RANKS = [
    "TB", "MB", "BR", "CEL", "TEN CEL", "MAJ", "CAP", "1T", "2T", "ASP",
    "SO", "1S", "2S", "3S", "CB", "S1", "S2",
]

# Most junior rank allowed to request missions
MIN_MISSION_REQUEST_RANK = "3S"

SETORES = [
    "BASP", "SOP", "SAP", "EPA-SEÇÃO", "EPA-TROPA", "CANIL", "EFSD", "ESI-SEÇÃO", "ESI-TROPA",
]

# Section codes carried by staff officers and section personnel
SECOES = ["CH-SOP", "SOP-01", "SOP-02", "SOP-03", "CH-SAP", "SAP-01", "SAP-03"]

ALL_SECTORS = SETORES + SECOES

SOP_SECTORS = ["CH-SOP", "SOP-01", "SOP-02", "SOP-03"]

ACCESS_LEVELS = ["N1", "N2", "N3", "OM"]

PRESENCE_STATUS = {
    "P": "PRESENTE",
    "F": "FALTA",
    "ESV": "SERVIÇO",
    "DSV": "DISP DE SERVIÇO",
    "MIS": "MISSAO",
    "FE": "FERIAS",
    "C-E": "CURSO-ESTÁGIO",
    "DPM": "DISPENSA MÉDICA",
    "JS": "JUNTA DE SAÚDE",
    "INSP": "INSPEÇÃO DE SAÚDE",
    "TRA": "TRANSFERIDO",
    "LI": "LICENÇA",
    "AGD": "DESLIGAMENTO",
    "DESL": "DESLIGADO",
    "INST": "INTRUÇAO",
    "A": "AUSENTE",
}

CALL_TYPES = {
    "INICIO": "1ª Chamada (Início de Expediente)",
    "TERMINO": "2ª Chamada (Término de Expediente)",
}

# Force map buckets
PRONTOS = ["P", "INST"]
BAIXAS = ["DPM", "JS", "INSP", "LI"]
EXTERNOS = ["MIS", "C-E", "FE", "TRA"]
INDISPONIVEIS = ["ESV", "A", "F"]

TIPOS_MISSAO = [
    "Escolta", "Policiamento", "Controle de Trânsito", "Segurança e Proteção de Autoridades",
    "Transporte de Militares", "Apoio a Formaturas e Eventos", "Apoios de Infraestrutura", "Outro",
]

MISSION_FUNCTIONS = [
    "Comandante", "Aux Comandante", "Efetivo S.I", "Efetivo PA", "Motorista (D)", "Motorista (B)",
]

ARMAMENT_OPTIONS = ["Pistola", "Fuzil", "Nenhum"]

MATERIAL_TYPES = [
    "EXEC", "TRÂNSITO", "CHOQUE", "OPERACIONAL", "FORMATURA",
    "ROUPARIA", "OUTROS", "FERRAGENS", "FERRAMENTAS", "COMUNICAÇÃO", "BANDEIRAS",
]

GESTAO_MATERIAL_SETORES = [
    "VERDE", "AZUL", "BRANCO", "AMARELO", "SALA DE MEIOS",
    "DEPÓSITO 01", "DEPÓSITO 02", "DEPÓSITO 03", "DEPÓSITO 04",
    "DEPÓSITO 05", "DEPÓSITO 06", "DEPÓSITO 07", "DEPÓSITO 08",
    "DEPÓSITO 09", "DEPÓSITO 10", "DEPÓSITO 11",
]

VIATURA_LABELS = {
    "operacional": "VTR OPERACIONAL",
    "descaracterizada": "VTR DESCARACTERIZADA",
    "caminhao_tropa": "CAMINHÃO TROPA",
}

FORCAS = ["FAB", "EB", "MB", "PMSP", "PRF", "PF", "Civil", "Outro"]
TIPOS_PESSOA = ["Militar", "Civil"]
