# Supabase table: parking_requests
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

parking_requests:
- id: uuid (primary key, default: gen_random_uuid())
- numero_autorizacao: serial (unique) - protocol number shown to the requester
- user_id: uuid (nullable) - public form, always null
- nome_completo: text (not null)
- posto_graduacao: text (default: '—')
- forca: text (default: 'FAB') - one of constants.FORCAS
- tipo_pessoa: text - 'Militar' or 'Civil'
- om: text (default: '—')
- telefone: text (nullable)
- email: text (not null)
- identidade: text (nullable, required for civilians)
- ext_marca_modelo: text (not null)
- ext_placa: text (not null) - ABC1234 or ABC1D23
- ext_cor: text (nullable)
- inicio: date (not null)
- termino: date (not null)
- observacao: text (nullable)
- identidade_url: text - public URL of the identity document
- cnh_url: text - public URL of the driver license
- crlv_url: text - public URL of the vehicle registration
- status: text (default: 'Pendente') - Pendente, Aprovado, Rejeitado
- decidido_por: uuid (foreign key to users.id, nullable)
- decidido_em: timestamp (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

Storage bucket: parking-docs (public), one object per uploaded document.
"""
