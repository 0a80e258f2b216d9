"""Prompt construction for the two AI tasks.

- Categorization: one transaction in, ``Categoria:``/``Confiança:`` lines out.
  The taxonomy is rendered into the prompt so the model only picks known
  groups.
- Extraction: a statement document (text or PDF) in, a JSON object with a
  ``transactions`` array out.

Prompts are in Portuguese because the statements, descriptions, and
category labels are.
"""

from __future__ import annotations

from .taxonomy import Taxonomy

CATEGORIZE_SYSTEM_INSTRUCTIONS = (
    "Você categoriza transações bancárias brasileiras usando a taxonomia de dois níveis "
    "fornecida. Escolha exatamente uma categoria no formato 'Grupo: Item'. Nunca invente "
    "grupos. Responda somente com as linhas pedidas."
)

EXTRACT_SYSTEM_INSTRUCTIONS = (
    "Você extrai transações de extratos bancários brasileiros. Responda somente com JSON "
    "válido no formato pedido, sem comentários nem texto adicional."
)

_CATEGORIZE_GUIDANCE = """\
INSTRUÇÕES:
1. Receitas: use "Receita Fixa" para salário, aposentadoria, pensão e aluguel recebido; \
"Receita Variável" para freelances, vendas e comissões.
2. Despesas: escolha o item mais específico do grupo que melhor descreve o gasto.
3. Descrição genérica ou ambígua (transferência, pagamento, PIX sem destinatário): \
confiança entre 0.2 e 0.6.
4. Descrição clara e específica: confiança entre 0.7 e 1.0.

EXEMPLOS:
- "SALARIO EMPRESA LTDA" -> Receita Fixa: Salário (0.9)
- "SUPERMERCADO ABC" -> Alimentação: Supermercado (0.8)
- "UBER *TRIP" -> Transporte: Transp. App/Taxi (0.9)
- "IFOOD DELIVERY" -> Alimentação: Delivery (0.9)
- "TRANSFERENCIA" -> Outros Gastos: Outros (0.3)
- "PAGAMENTO" -> Outros Gastos: Outros (0.2)

Responda APENAS no formato:
Categoria: Grupo: Item
Confiança: 0.0-1.0
"""

_EXTRACT_GUIDANCE = """\
Extraia TODAS as movimentações do extrato abaixo (débitos, créditos, PIX, TED/DOC, \
boletos, compras no cartão, tarifas). O extrato pode vir de qualquer banco brasileiro.

Para cada transação informe:
- date: data no formato DD/MM/AAAA;
- description: histórico completo, exatamente como aparece;
- amount: número com sinal (negativo para débitos/saídas, positivo para créditos/entradas), \
com centavos.

NÃO inclua saldos, cabeçalhos, totais ou dados da conta.

Responda APENAS com JSON válido:
{"transactions": [{"date": "DD/MM/AAAA", "description": "...", "amount": -123.45}]}
"""


def render_taxonomy(taxonomy: Taxonomy) -> str:
    """One ``Group: item, item, ...`` line per group, in declaration order."""

    return "\n".join(f"{g.name}: {', '.join(g.items)}" for g in taxonomy)


def build_categorize_prompt(description: str, amount: float, taxonomy: Taxonomy) -> str:
    kind = "RECEITA" if amount >= 0 else "DESPESA"
    return (
        f'DESCRIÇÃO: "{description}"\n'
        f"VALOR: R$ {abs(amount):.2f}\n"
        f"TIPO: {kind}\n\n"
        f"CATEGORIAS DISPONÍVEIS:\n{render_taxonomy(taxonomy)}\n\n"
        f"{_CATEGORIZE_GUIDANCE}"
    )


def build_extract_prompt(*, filename: str, document_text: str | None = None) -> str:
    """Return the extraction prompt.

    With ``document_text`` the statement is embedded between triple quotes;
    without it the caller attaches the document (PDF) as a separate input part.
    """

    head = f"Arquivo: {filename}\n\n{_EXTRACT_GUIDANCE}"
    if document_text is None:
        return head + "\nO extrato está anexado a esta mensagem.\n"
    return f'{head}\nCONTEÚDO DO EXTRATO:\n"""\n{document_text}\n"""\n'


__all__ = [
    "CATEGORIZE_SYSTEM_INSTRUCTIONS",
    "EXTRACT_SYSTEM_INSTRUCTIONS",
    "build_categorize_prompt",
    "build_extract_prompt",
    "render_taxonomy",
]
